"""
Product detail: incident timeline, yearly availability statistics and
the availability score of a single product.

The observation window runs from ``OBSERVATION_START`` to the report
date. Incidents of one product are assumed not to overlap; overlapping
ones have their days counted once per incident.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from shared.domain.dates import format_month_year, round_half_up
from shared.domain.model import Incident, Status
from shared.domain.status import StatusInfo, classify, UNKNOWN

logger = logging.getLogger(__name__)

OBSERVATION_START = date(2021, 4, 1)

PENALTIES = {
    Status.SHORTAGE: 1.0,
    Status.TENSION: 0.5,
    Status.DISCONTINUED: 1.0,
}

DONUT_SIZE = 120
DONUT_STROKE = 8


def resolve_report_date(incidents: List[Incident], global_report_date: Optional[date] = None) -> Optional[date]:
    """The global report date, else the product's latest calculated end."""
    if global_report_date is not None:
        return global_report_date
    ends = [i.calculated_end_date for i in incidents if i.calculated_end_date]
    return max(ends, default=None)


def effective_end(incident: Incident, report_date: date) -> date:
    """Open discontinuations run to the report date; otherwise the best known end."""
    if incident.status == Status.DISCONTINUED and incident.end_date is None:
        return report_date
    return incident.calculated_end_date or incident.end_date or report_date


@dataclass
class YearlyStat:
    year: int
    rupture_days: int = 0
    tension_days: int = 0
    arret_days: int = 0
    total_days: int = 0

    @property
    def available_days(self) -> int:
        return self.total_days - self.rupture_days - self.tension_days - self.arret_days

    def add(self, status: Optional[Status], days: int):
        if status == Status.SHORTAGE:
            self.rupture_days += days
        elif status == Status.TENSION:
            self.tension_days += days
        elif status == Status.DISCONTINUED:
            self.arret_days += days


@dataclass
class AvailabilitySummary:
    report_date: date
    total_days: int
    rupture_days: int
    tension_days: int
    arret_days: int
    score: float
    yearly: List[YearlyStat] = field(default_factory=list)

    @property
    def available_days(self) -> int:
        return self.total_days - self.rupture_days - self.tension_days - self.arret_days


def _year_total_days(year: int, window_start: date, report_date: date) -> int:
    start = max(date(year, 1, 1), window_start)
    end = min(date(year, 12, 31), report_date)
    if end > start:
        return (end - start).days + 1
    return 0


def _year_overlap_days(incident: Incident, end: date, year: int, window_start: date, report_date: date) -> int:
    # The year bound is the end of Dec 31, i.e. the next Jan 1; incident
    # and report ends are taken at the start of their day.
    overlap_start = max(incident.start_date, date(year, 1, 1), window_start)
    overlap_end = min(end, date(year + 1, 1, 1), report_date)
    if overlap_end > overlap_start:
        return (overlap_end - overlap_start).days
    return 0


def compute_availability(
    incidents: List[Incident],
    report_date: date,
    window_start: date = OBSERVATION_START,
) -> AvailabilitySummary:
    """
    Day counts per status over the window, per year and in total, and the
    score ``100 * (total - penalties) / total`` rounded to one decimal.
    """
    yearly = [
        YearlyStat(year, total_days=_year_total_days(year, window_start, report_date))
        for year in range(window_start.year, report_date.year + 1)
    ]
    totals = YearlyStat(0)
    penalty = 0.0

    for incident in incidents:
        if incident.start_date is None:
            logger.warning(f"Ignoring incident without start date for {incident.product}")
            continue
        end = effective_end(incident, report_date)

        for stat in yearly:
            days = _year_overlap_days(incident, end, stat.year, window_start, report_date)
            if days:
                stat.add(incident.status, days)

        start = max(incident.start_date, window_start)
        clipped_end = min(end, report_date)
        if clipped_end > start:
            days = (clipped_end - start).days + 1
            totals.add(incident.status, days)
            penalty += days * PENALTIES.get(incident.status, 0.0)

    total_days = observation_days(report_date, window_start)
    score = round_half_up(100 * (total_days - penalty) / total_days, 1) if total_days > 0 else 100.0

    return AvailabilitySummary(
        report_date=report_date,
        total_days=total_days,
        rupture_days=totals.rupture_days,
        tension_days=totals.tension_days,
        arret_days=totals.arret_days,
        score=score,
        yearly=yearly,
    )


def current_status(incidents: List[Incident], report_date: date) -> StatusInfo:
    """Status of the most recently started incident at the report date."""
    dated = [i for i in incidents if i.start_date is not None]
    if not dated:
        return UNKNOWN
    latest = max(dated, key=lambda i: i.start_date)
    return classify(latest, report_date)


@dataclass(frozen=True)
class DetailBar:
    status: Optional[Status]
    start: date
    end: date
    label: str


def detail_bars(
    incidents: List[Incident], report_date: date, window_start: date = OBSERVATION_START
) -> List[DetailBar]:
    """One bar per incident clipped to the window, labelled ``Rupture 04/23 - 09/23``."""
    bars = []
    for incident in sorted(
        (i for i in incidents if i.start_date is not None), key=lambda i: i.start_date
    ):
        start = max(incident.start_date, window_start)
        end = min(effective_end(incident, report_date), report_date)
        status = incident.status.value if incident.status else ""
        bars.append(
            DetailBar(
                status=incident.status,
                start=start,
                end=end,
                label=f"{status} {format_month_year(start)} - {format_month_year(end)}",
            )
        )
    return bars


@dataclass(frozen=True)
class DonutGeometry:
    size: int
    stroke: int
    radius: float
    circumference: float
    score_arc: float
    offset: float


def donut_geometry(score: float, size: int = DONUT_SIZE, stroke: int = DONUT_STROKE) -> DonutGeometry:
    radius = (size - stroke) / 2
    circumference = 2 * math.pi * radius
    return DonutGeometry(
        size=size,
        stroke=stroke,
        radius=radius,
        circumference=circumference,
        score_arc=score / 100 * circumference,
        offset=circumference / 4,
    )


@dataclass
class Cip13Sales:
    cip13: str
    label: str
    by_year: Dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.by_year.values())


@dataclass
class CisSales:
    code_cis: str
    cip13_sales: Dict[str, Cip13Sales] = field(default_factory=dict)
    total_by_year: Dict[int, int] = field(default_factory=dict)


def group_sales_by_cis(rows: List[Dict[str, Any]]) -> Dict[str, CisSales]:
    """Sales rows grouped by CIS, then CIP13, with box counts per year."""
    grouped: Dict[str, CisSales] = {}
    for row in rows:
        code_cis = str(row["code_cis"])
        cip13 = str(row["cip13"])
        year = int(row["year"])
        boxes = int(row.get("total_boxes") or 0)

        cis = grouped.setdefault(code_cis, CisSales(code_cis))
        sale = cis.cip13_sales.setdefault(cip13, Cip13Sales(cip13, row.get("product_label") or cip13))
        sale.by_year[year] = boxes
        cis.total_by_year[year] = cis.total_by_year.get(year, 0) + boxes
    return grouped


def format_number(value: int) -> str:
    """French thousands separator; zero is shown as a dash."""
    if value == 0:
        return "-"
    return f"{value:,}".replace(",", " ")


def observation_days(report_date: date, window_start: date = OBSERVATION_START) -> int:
    return (report_date - window_start).days + 1


@dataclass
class ProductDetail:
    report_date: date
    status: StatusInfo
    availability: AvailabilitySummary
    bars: List[DetailBar]
    sales: Dict[str, CisSales]
    cis_codes: List[str]


def build_product_detail(
    incidents: List[Incident],
    global_report_date: Optional[date] = None,
    sales_rows: Optional[List[Dict[str, Any]]] = None,
) -> Optional[ProductDetail]:
    """Everything the product page shows; None when no report date can be established."""
    report_date = resolve_report_date(incidents, global_report_date)
    if report_date is None:
        logger.warning("No report date for product detail, nothing to compute")
        return None
    cis_codes = sorted({code for incident in incidents for code in incident.cis_codes})
    return ProductDetail(
        report_date=report_date,
        status=current_status(incidents, report_date),
        availability=compute_availability(incidents, report_date),
        bars=detail_bars(incidents, report_date),
        sales=group_sales_by_cis(sales_rows or []),
        cis_codes=cis_codes,
    )
