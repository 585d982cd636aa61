"""Unit tests for the SVG renderers."""
from datetime import date

from shared.domain.model import parse_incidents
from shortage_dashboard.product_detail import detail_bars
from shortage_dashboard.rendering.svg import (
    SvgRenderPort,
    render_detail_timeline,
    render_discontinued_notice,
    render_donut,
    render_summary_chart,
)
from shortage_dashboard.store import MonthlyAggregate
from shortage_dashboard.summary import DiscontinuedOnlyNotice
from shortage_dashboard.timeline import build_rows, render_table

REPORT = date(2024, 6, 10)


def test_table_markup(make_row):
    incidents = parse_incidents([
        make_row(product="A", accented_product="Â <test>", product_id=3, start_date="2024-06-08",
                 calculated_end_date="2024-06-10"),
        make_row(product="B", product_id=4, start_date="2024-01-01", end_date="2024-02-01",
                 calculated_end_date="2024-02-01"),
    ])
    rows = build_rows(["A", "B"], ["Â <test>", "B"], incidents, date(2023, 7, 1), date(2024, 7, 1), REPORT)

    html = render_table(rows, SvgRenderPort())

    assert html.startswith('<div id="maintbl-dash">')
    assert html.count('class="maintbl-row-modern') == 2
    assert "recently-changed-row" in html
    assert 'href="/product/3"' in html
    assert "Â &lt;test&gt;" in html
    assert "Changements de statut ces 7 derniers jours" in html
    assert html.index("recent-changes-block") < html.index("Autres situations de disponibilité")
    assert html.endswith("</div>")


def test_summary_chart_draws_both_curves():
    series = [
        MonthlyAggregate(date(2024, 5, 1), 3, 1),
        MonthlyAggregate(date(2024, 6, 1), 2, 0),
    ]
    svg = render_summary_chart(
        series, 12, date(2023, 7, 1), date(2024, 7, 1), REPORT, {"rupture": 2, "tension": 0}
    )
    assert svg.count("<polyline") == 2
    assert "sumchart-current-point rupture-fill" in svg
    assert "sumchart-current-point tension-fill" not in svg
    assert ">2</text>" in svg


def test_summary_chart_quarterly_marks():
    series = [MonthlyAggregate(date(2023, 2, 1), 1, 0), MonthlyAggregate(date(2023, 4, 1), 1, 0)]
    svg = render_summary_chart(series, 24, date(2022, 7, 1), date(2024, 7, 1), REPORT)
    assert svg.count('class="sumchart-point rupture-fill"') == 1


def test_discontinued_notice():
    html = render_discontinued_notice(DiscontinuedOnlyNotice(2, date(2024, 6, 5)))
    assert "2 produits arrêtés depuis le 5 juin 2024" in html


def test_donut_shows_score():
    svg = render_donut(87.5)
    assert "87.5%" in svg
    assert 'class="donut-progress"' in svg


def test_detail_timeline(make_row):
    incidents = parse_incidents([
        make_row(status="Tension", start_date="2023-04-03", end_date="2023-09-20",
                 calculated_end_date="2023-09-20"),
    ])
    svg = render_detail_timeline(detail_bars(incidents, REPORT), date(2021, 4, 1), REPORT)
    assert "Tension 04/23 - 09/23" in svg
    assert 'class="tension-fill"' in svg
