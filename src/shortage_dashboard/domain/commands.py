"""Commands for the shortage dashboard: user intents on the filters."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from shared.domain.commands import Command


@dataclass
class SetSearchTerm(Command):
    search_term: str


@dataclass
class SetAtcClass(Command):
    """Selecting a class clears the molecule, which may not belong to it."""
    atc_class: str


@dataclass
class SetMolecule(Command):
    molecule_id: str  # one id or comma-separated ids


@dataclass
class SetPeriod(Command):
    """Either a number of months or the whole history (``all_time``)."""
    months_to_show: Optional[int] = None
    all_time: bool = False


@dataclass
class SetVaccinesOnly(Command):
    vaccines_only: bool


@dataclass
class ResetFilters(Command):
    pass


@dataclass
class SelectSuggestion(Command):
    """A search suggestion was picked; out-of-period products switch to the whole history."""
    suggestion: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadIncidents(Command):
    """Fetch incidents for the current filters."""
    pass


@dataclass
class LoadAtcClasses(Command):
    pass
