"""Shaping of the monthly summary chart (rupture and tension curves)."""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from shared.domain.dates import first_of_month, format_french_date
from shared.domain.model import Incident, Status
from shortage_dashboard.store import MonthlyAggregate

QUARTERLY_THRESHOLD_MONTHS = 24
QUARTER_MONTHS = (1, 4, 7, 10)


def summary_series(aggregate: List[MonthlyAggregate], months_to_show: int) -> List[MonthlyAggregate]:
    """Months with at least one rupture or tension; one point per quarter on long periods."""
    series = [m for m in aggregate if m.rupture > 0 or m.tension > 0]
    if months_to_show >= QUARTERLY_THRESHOLD_MONTHS:
        series = [m for m in series if m.date.month in QUARTER_MONTHS]
    return series


def should_show_mark(month: date, months_to_show: int, report_date: Optional[date]) -> bool:
    """The report month always gets a mark; long periods otherwise only mark quarters."""
    if report_date is not None and month == first_of_month(report_date):
        return True
    if months_to_show >= QUARTERLY_THRESHOLD_MONTHS:
        return month.month in QUARTER_MONTHS
    return True


@dataclass(frozen=True)
class DiscontinuedOnlyNotice:
    product_count: int
    since: date

    @property
    def message(self) -> str:
        label = "produit arrêté" if self.product_count == 1 else "produits arrêtés"
        return f"{self.product_count} {label} depuis le {format_french_date(self.since)}"


def discontinued_only_notice(
    series: List[MonthlyAggregate], incidents: List[Incident]
) -> Optional[DiscontinuedOnlyNotice]:
    """
    When the chart has nothing to draw but the selection holds
    discontinued products, describe them instead of an empty chart.
    """
    if series:
        return None
    discontinued = [
        i for i in incidents if i.status == Status.DISCONTINUED and i.start_date is not None
    ]
    if not discontinued:
        return None
    earliest = min(i.start_date for i in discontinued)
    return DiscontinuedOnlyNotice(len(discontinued), earliest)
