"""
Incident table: one row per product with its incident bars on a shared
time axis.

Everything here is pure: rows are computed as frozen dataclasses and a
``RenderPort`` implementation turns them into markup.
"""
import abc
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from html import escape
from typing import Dict, List, Optional, Tuple

from shared.domain.dates import (
    days_between,
    days_to_years_months,
    format_duration_since,
    format_french_date,
)
from shared.domain.model import Incident, Status
from shared.domain.status import StatusInfo, classify, UNKNOWN

logger = logging.getLogger(__name__)

RECENT_DAYS = 7
RECENT_SECTION_TITLE = "Changements de statut ces 7 derniers jours"
OTHER_SECTION_TITLE = "Autres situations de disponibilité"

STARTED = "started"
ENDED = "ended"


@dataclass(frozen=True)
class RecentChange:
    type: str
    status: Optional[Status]
    date: date
    incident: Incident


def identify_recent_changes(
    incidents: List[Incident], report_date: date, recent_days: int = RECENT_DAYS
) -> Dict[str, RecentChange]:
    """
    Products whose status changed within ``recent_days`` of the report date.

    An incident started recently when its start date is in the window; it
    ended recently when its calculated end is in the window and it carries
    an explicit end date. For a product with both, an end replaces a start
    only when strictly later. Keys keep detection order.
    """
    window_start = report_date - timedelta(days=recent_days)

    def in_window(day: Optional[date]) -> bool:
        return day is not None and window_start <= day <= report_date

    changes: Dict[str, RecentChange] = {}
    for incident in incidents:
        if in_window(incident.start_date):
            changes[incident.product] = RecentChange(
                STARTED, incident.status, incident.start_date, incident
            )

    for incident in incidents:
        if not (in_window(incident.calculated_end_date) and incident.end_date is not None):
            continue
        existing = changes.get(incident.product)
        if existing is None or existing.date < incident.calculated_end_date:
            changes[incident.product] = RecentChange(
                ENDED, incident.status, incident.calculated_end_date, incident
            )
    return changes


def order_products(products: List[str], recent_changes: Dict[str, RecentChange]) -> List[str]:
    """Recently changed products first (detection order), then the rest in original order."""
    recent = [product for product in recent_changes]
    return recent + [product for product in products if product not in recent_changes]


class TimeScale:
    """Linear mapping of dates onto ``[0, width]``."""

    def __init__(self, start: date, end: date, width: float):
        if end <= start:
            raise ValueError(f"Empty time domain {start} - {end}")
        self.start = start
        self.end = end
        self.width = width
        self._span = (end - start).days

    def __call__(self, day: date) -> float:
        return (day - self.start).days / self._span * self.width


@dataclass(frozen=True)
class TableLayout:
    width: float = 600
    row_height: int = 23
    bar_height: int = 15
    status_box_width: int = 8
    min_bar_width: float = 2


@dataclass(frozen=True)
class BarSegment:
    x: float
    width: float
    status: Optional[Status]
    css_class: str
    start: date
    end: date
    tooltip_html: str


@dataclass(frozen=True)
class TableRow:
    product: str
    label: str
    short_label: str
    product_id: Optional[int]
    status: StatusInfo
    recently_changed: bool
    bars: Tuple[BarSegment, ...]
    marker_x: float
    background_end_x: float
    label_tooltip_html: str

    @property
    def href(self) -> str:
        return f"/product/{self.product_id}"


def short_label(label: str) -> str:
    """Text before the comma when the label has exactly one comma."""
    if label.count(",") == 1:
        return label.split(",")[0]
    return label


def bar_bounds(incident: Incident, timeline_start: date, report_date: date) -> Optional[Tuple[date, date]]:
    """Clipped start and drawn end of an incident bar, or None when its dates are missing."""
    if incident.start_date is None:
        return None
    start = max(incident.start_date, timeline_start)
    if incident.status == Status.DISCONTINUED and incident.end_date is None:
        end = report_date
    else:
        end = incident.calculated_end_date
    if end is None:
        return None
    return start, end


def label_tooltip(
    label: str, incident: Optional[Incident], status: StatusInfo, report_date: date
) -> str:
    """Product label tooltip: name, DCI/ATC, status (with its age when ongoing) and CIS list."""
    molecule = incident.molecule if incident else ""
    atc_code = incident.atc_code if incident else ""
    parts = [
        f'<div class="tooltip-title">{escape(label)}</div>',
        f'<div class="tooltip-dci">DCI: {escape(molecule)} / ATC: {escape(atc_code)}</div>',
    ]
    status_line = f'<div class="tooltip-status {status.shorthand}"><i class="{status.icon_token}"></i> {escape(status.text)}'
    if status.shorthand in ("rupture", "tension"):
        if incident is not None and incident.is_active_at(report_date):
            since = format_duration_since(days_between(incident.start_date, report_date))
            parts.append(f"{status_line} {since}</div>")
    else:
        parts.append(f"{status_line}</div>")

    if incident is not None and incident.cis_codes:
        items = []
        for code in incident.cis_codes:
            name = incident.cis_names.get(code, "")
            items.append(
                f'<li class="tooltip-cis-item">{escape(code)}{": " + escape(name) if name else ""}</li>'
            )
        parts.append(
            '<div class="tooltip-cis-list"><b>Codes CIS concernés :</b><ul>'
            + "".join(items)
            + "</ul></div>"
        )
    return "".join(parts)


def bar_tooltip(incident: Incident, report_date: date) -> str:
    """Incident bar tooltip: status, ongoing or finished, period and duration."""
    parts = [
        f'<div class="tooltip-title">{escape(incident.accented_product or incident.product)}</div>',
        f'<div class="tooltip-dci">DCI: {escape(incident.molecule)}</div>',
    ]
    if incident.status == Status.AVAILABLE:
        parts.append('<div class="tooltip-status disponible">Disponible</div>')
        return "".join(parts)
    if incident.status not in (Status.DISCONTINUED, Status.SHORTAGE, Status.TENSION):
        return "".join(parts)

    ongoing = incident.end_date is None or (
        incident.calculated_end_date is not None and incident.calculated_end_date >= report_date
    )
    end = report_date if ongoing else (incident.end_date or incident.calculated_end_date)
    start = incident.start_date
    duration = days_to_years_months(days_between(start, end)) if start else days_to_years_months(0)
    state = "En cours" if ongoing else "Terminé"
    start_text = format_french_date(start) if start else ""
    period = f"Depuis le {start_text}" if ongoing else f"Du {start_text} au {format_french_date(end)}"

    if incident.status == Status.DISCONTINUED:
        title = "Arrêt de commercialisation"
    else:
        title = incident.status.value
    css = incident.status.value.lower()
    parts.append(
        f'<div class="tooltip-status {css}">{title} / {state}<br>{period} ({duration})</div>'
    )
    return "".join(parts)


def build_bars(
    incidents: List[Incident], scale: TimeScale, report_date: date, layout: TableLayout
) -> Tuple[BarSegment, ...]:
    bars = []
    for incident in incidents:
        bounds = bar_bounds(incident, scale.start, report_date)
        if bounds is None:
            logger.warning(f"Skipping bar without dates for {incident.product}")
            continue
        start, end = bounds
        x_start = scale(start)
        width = max(layout.min_bar_width, scale(end) - x_start)
        status_name = incident.status.value if incident.status else "inconnu"
        bars.append(
            BarSegment(
                x=x_start,
                width=width,
                status=incident.status,
                css_class=f"bar {status_name}-fill".lower(),
                start=start,
                end=end,
                tooltip_html=bar_tooltip(incident, report_date),
            )
        )
    return tuple(bars)


def build_rows(
    products: List[str],
    accented_products: List[str],
    incidents: List[Incident],
    start_date: date,
    end_date: date,
    report_date: date,
    layout: Optional[TableLayout] = None,
    recent_days: int = RECENT_DAYS,
) -> List[TableRow]:
    """
    Rows in display order. The product's status is its first incident
    classified at the report date; labels come from the accented name at
    the product's own index.
    """
    layout = layout or TableLayout()
    scale = TimeScale(start_date, end_date, layout.width)
    recent = identify_recent_changes(incidents, report_date, recent_days)

    by_product: Dict[str, List[Incident]] = {}
    for incident in incidents:
        by_product.setdefault(incident.product, []).append(incident)

    rows = []
    for product in order_products(products, recent):
        product_incidents = by_product.get(product, [])
        main = product_incidents[0] if product_incidents else None
        status = classify(main, report_date) if main is not None else UNKNOWN
        index = products.index(product) if product in products else -1
        if 0 <= index < len(accented_products):
            label = accented_products[index]
        else:
            label = main.accented_product if main else product
        report_x = scale(report_date)
        rows.append(
            TableRow(
                product=product,
                label=label,
                short_label=short_label(label),
                product_id=main.product_id if main else None,
                status=status,
                recently_changed=product in recent,
                bars=build_bars(product_incidents, scale, report_date, layout),
                marker_x=report_x,
                background_end_x=report_x,
                label_tooltip_html=label_tooltip(label, main, status, report_date),
            )
        )
    return rows


class RenderPort(abc.ABC):
    """Drawing side of the incident table."""

    @abc.abstractmethod
    def begin_table(self, layout: TableLayout):
        raise NotImplementedError

    @abc.abstractmethod
    def section(self, title: str):
        raise NotImplementedError

    @abc.abstractmethod
    def row(self, row: TableRow, layout: TableLayout):
        raise NotImplementedError

    @abc.abstractmethod
    def end_table(self):
        raise NotImplementedError


def render_table(rows: List[TableRow], port: RenderPort, layout: Optional[TableLayout] = None):
    """Drive ``port`` through the rows, opening each section before its first row."""
    layout = layout or TableLayout()
    port.begin_table(layout)
    recent_opened = False
    other_opened = False
    for row in rows:
        if row.recently_changed and not recent_opened:
            port.section(RECENT_SECTION_TITLE)
            recent_opened = True
        if not row.recently_changed and not other_opened:
            port.section(OTHER_SECTION_TITLE)
            other_opened = True
        port.row(row, layout)
    return port.end_table()
