"""Domain events for the shortage dashboard."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.commands import Event
from shortage_dashboard.store import FilterState


@dataclass
class FiltersChanged(Event):
    """Raised whenever a command changed the filter state."""
    filters: FilterState


@dataclass
class IncidentsLoaded(Event):
    """A fetch response was applied to the store."""
    token: int
    incident_count: int
    report_date: Optional[date]


@dataclass
class StaleResponseDiscarded(Event):
    """A fetch response arrived after a newer request was issued and was dropped."""
    token: int
    latest_token: int
