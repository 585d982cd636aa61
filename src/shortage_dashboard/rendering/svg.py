"""
SVG/HTML rendering of the dashboard charts.

Markup is produced as strings; tooltips are embedded as ``data-tooltip``
attributes for the page script to display.
"""
import logging
from datetime import date
from html import escape
from typing import List, Optional

from shared.domain.dates import add_months, first_of_month
from shortage_dashboard.product_detail import DetailBar, donut_geometry
from shortage_dashboard.store import MonthlyAggregate
from shortage_dashboard.summary import DiscontinuedOnlyNotice, should_show_mark
from shortage_dashboard.timeline import RenderPort, TableLayout, TableRow, TimeScale

logger = logging.getLogger(__name__)


def _num(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


class SvgRenderPort(RenderPort):
    """Incident table as HTML rows, each holding an inline SVG timeline."""

    def __init__(self):
        self.parts: List[str] = []
        self._in_recent_block = False

    def begin_table(self, layout: TableLayout):
        self.parts = [
            '<div id="maintbl-dash">',
            '<div class="card-title">Détail des incidents: produits, statut et durée de chaque incident</div>',
        ]
        self._in_recent_block = False

    def section(self, title: str):
        if self._in_recent_block:
            self.parts.append("</div>")
            self._in_recent_block = False
        if title.startswith("Changements"):
            self.parts.append(f'<div class="recent-changes-title-row">{escape(title)}</div>')
            self.parts.append('<div class="recent-changes-block">')
            self._in_recent_block = True
        else:
            self.parts.append(f'<div class="other-changes-title-row">{escape(title)}</div>')

    def row(self, row: TableRow, layout: TableLayout):
        status = row.status
        classes = f"maintbl-row-modern hover-{status.shorthand}"
        if row.recently_changed:
            classes += " recently-changed-row"
        middle = layout.row_height / 2
        bar_y = (layout.row_height - layout.bar_height) / 2
        box_height = layout.bar_height + 2

        svg = [
            f'<svg width="{_num(layout.width)}" height="{layout.row_height}">',
            f'<line x1="0" x2="{_num(row.background_end_x)}" y1="{_num(middle)}" y2="{_num(middle)}" '
            f'stroke="var(--vertleger)" stroke-width="{layout.bar_height}"/>',
        ]
        for bar in row.bars:
            svg.append(
                f'<rect class="{bar.css_class}" x="{_num(bar.x)}" y="{_num(bar_y)}" '
                f'width="{_num(bar.width)}" height="{layout.bar_height}" '
                f'data-tooltip="{escape(bar.tooltip_html)}"/>'
            )
        svg.append(
            f'<rect class="status-marker" x="{_num(row.marker_x - layout.status_box_width / 2)}" '
            f'y="{_num((layout.row_height - box_height) / 2)}" width="{layout.status_box_width}" '
            f'height="{box_height}" style="fill:{status.color_token}"/>'
        )
        svg.append("</svg>")

        self.parts.append(
            f'<div class="{classes}">'
            f'<span class="maintbl-row-icon"><i class="{status.icon_token}" style="color:{status.color_token}"></i></span>'
            f'<a class="maintbl-row-label" href="{escape(row.href)}" '
            f'data-tooltip="{escape(row.label_tooltip_html)}" data-tooltip-class="{status.css_class}">'
            f"{escape(row.short_label)}</a>"
            f'<span class="maintbl-row-bars">{"".join(svg)}</span>'
            "</div>"
        )

    def end_table(self) -> str:
        if self._in_recent_block:
            self.parts.append("</div>")
            self._in_recent_block = False
        self.parts.append("</div>")
        return "".join(self.parts)


def render_summary_chart(
    series: List[MonthlyAggregate],
    months_to_show: int,
    start_date: date,
    end_date: date,
    report_date: date,
    current_totals: Optional[dict] = None,
    width: int = 900,
    height: int = 300,
    margin: int = 30,
) -> str:
    """Rupture and tension curves with monthly marks and the current totals at the report date."""
    plot_width = width - 2 * margin
    plot_height = height - 2 * margin
    x = TimeScale(start_date, end_date, plot_width)
    peak = max([m.rupture for m in series] + [m.tension for m in series] + [1])

    def y(value: float) -> float:
        return plot_height - value / peak * plot_height

    parts = [
        f'<svg id="summary" width="{width}" height="{height}" viewBox="0 0 {width} {height}">',
        f'<g transform="translate({margin},{margin})">',
    ]
    for field, css in (("rupture", "rupture"), ("tension", "tension")):
        points = " ".join(f"{_num(x(m.date))},{_num(y(getattr(m, field)))}" for m in series)
        if points:
            parts.append(f'<polyline class="sumchart-line {css}-stroke" fill="none" points="{points}"/>')
        for m in series:
            value = getattr(m, field)
            if value > 0 and should_show_mark(m.date, months_to_show, report_date):
                parts.append(
                    f'<circle class="sumchart-point {css}-fill" cx="{_num(x(m.date))}" '
                    f'cy="{_num(y(value))}" r="2"/>'
                )

    totals = current_totals or {}
    month_start = first_of_month(report_date)
    label_x = (x(month_start) + x(add_months(month_start, 1))) / 2
    for field, css in (("rupture", "rupture"), ("tension", "tension")):
        value = totals.get(field, 0)
        if value > 0:
            parts.append(
                f'<circle class="sumchart-current-point {css}-fill" cx="{_num(x(report_date))}" '
                f'cy="{_num(y(value))}" r="3"/>'
            )
            parts.append(
                f'<text class="sumchart-current-label" x="{_num(label_x)}" y="{_num(y(value) - 10)}" '
                f'text-anchor="middle">{value}</text>'
            )
    parts.append("</g></svg>")
    return "".join(parts)


def render_discontinued_notice(notice: DiscontinuedOnlyNotice) -> str:
    return (
        '<div class="arret-only-message">'
        "<h3>Arrêt de commercialisation</h3>"
        f"<p>{escape(notice.message)}</p>"
        "</div>"
    )


def render_donut(score: float) -> str:
    """Availability score ring; the arc starts at 12 o'clock."""
    g = donut_geometry(score)
    center = g.size / 2
    return (
        f'<svg width="{g.size}" height="{g.size}" viewBox="0 0 {g.size} {g.size}">'
        f'<circle class="donut-background" cx="{_num(center)}" cy="{_num(center)}" r="{_num(g.radius)}" '
        f'stroke-width="{g.stroke}"/>'
        f'<circle class="donut-progress" cx="{_num(center)}" cy="{_num(center)}" r="{_num(g.radius)}" '
        f'stroke-width="{g.stroke}" stroke-dasharray="{_num(g.score_arc)} {_num(g.circumference - g.score_arc)}" '
        f'stroke-dashoffset="{_num(g.offset)}"/>'
        f'<text class="donut-text" x="{_num(center)}" y="{_num(center + 7)}">{score:.1f}%</text>'
        "</svg>"
    )


def render_detail_timeline(
    bars: List[DetailBar],
    window_start: date,
    report_date: date,
    width: int = 900,
    label_width: int = 180,
    bar_height: int = 14,
    bar_gap: int = 6,
) -> str:
    """Product page timeline: one labelled bar per incident over the observation window."""
    plot_width = width - label_width
    x = TimeScale(window_start, report_date, plot_width)
    height = max(1, len(bars)) * (bar_height + bar_gap)
    parts = [f'<svg width="{width}" height="{height}">']
    for index, bar in enumerate(bars):
        top = index * (bar_height + bar_gap)
        x_start = x(bar.start)
        bar_width = max(2, x(bar.end) - x_start)
        status = bar.status.value.lower() if bar.status else "inconnu"
        parts.append(
            f'<line class="grid-line-horizontal" x1="{label_width}" x2="{width}" '
            f'y1="{_num(top + bar_height / 2)}" y2="{_num(top + bar_height / 2)}"/>'
        )
        parts.append(
            f'<rect class="{status}-fill" x="{_num(x_start + label_width)}" y="{top}" '
            f'width="{_num(bar_width)}" height="{bar_height}"/>'
        )
        parts.append(
            f'<text class="productpg-incident-label" x="0" y="{top + bar_height - 2}">{escape(bar.label)}</text>'
        )
    parts.append("</svg>")
    return "".join(parts)
