"""
Dashboard session: filter controls wired to the message bus, and the page
fragments rendered from the store.

Run ``dispomed-dashboard --output dashboard.html`` to fetch the current
incidents from the API and write a static page.
"""
import argparse
import logging
import sys
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional

import config
from shortage_dashboard.adapters.api_client import (
    AbstractShortageClient,
    HTTPShortageClient,
    ShortageClientError,
)
from shortage_dashboard.domain import commands
from shortage_dashboard.product_detail import OBSERVATION_START, build_product_detail
from shortage_dashboard.rendering.pages import (
    render_ema_incidents,
    render_substitution_groups,
    render_suggestion,
)
from shortage_dashboard.rendering.svg import (
    SvgRenderPort,
    render_detail_timeline,
    render_discontinued_notice,
    render_donut,
    render_summary_chart,
)
from shortage_dashboard.search import is_searchable, status_badge, status_badge_class
from shortage_dashboard.service_layer import messagebus
from shortage_dashboard.service_layer.context import DashboardContext
from shortage_dashboard.service_layer.debounce import (
    RESIZE_DELAY_SECONDS,
    SEARCH_DELAY_SECONDS,
    Debouncer,
)
from shortage_dashboard.store import AggregationStore, NO_RESULTS
from shortage_dashboard.substitutions import group_substitutions
from shortage_dashboard.summary import discontinued_only_notice, summary_series
from shortage_dashboard.timeline import TableLayout, build_rows, render_table
from shared.domain.model import parse_date, parse_incidents

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "Aucun résultat ne correspond à votre recherche"


class Dashboard:
    def __init__(self, context: Optional[DashboardContext] = None, timer_factory=None):
        self.context = context or DashboardContext()
        self.layout = TableLayout()
        self.last_render: Dict[str, str] = {}
        self.search_input = Debouncer(self._apply_search, SEARCH_DELAY_SECONDS, timer_factory)
        self.resize = Debouncer(self._apply_resize, RESIZE_DELAY_SECONDS, timer_factory)

    @property
    def store(self) -> AggregationStore:
        return self.context.store

    def dispatch(self, command: commands.Command):
        return messagebus.handle(command, self.context)

    def start(self):
        """Initial load: incidents for the default filters, then the ATC classes."""
        self.dispatch(commands.LoadIncidents())
        self.dispatch(commands.LoadAtcClasses())

    def _apply_search(self, text: str):
        self.dispatch(commands.SetSearchTerm(text))

    def _apply_resize(self, width: float):
        self.layout = TableLayout(width=width)
        self.render()

    def suggestions(self, text: str) -> List[Dict[str, Any]]:
        """Search suggestions, each with the status badge it is listed with."""
        if not is_searchable(text):
            return []
        rows = self.context.client.search_suggestions(text, self.store.filters.months_to_show)
        return [
            dict(row, status_badge=status_badge(row), badge_class=status_badge_class(row))
            for row in rows
        ]

    def render_suggestions(self, text: str) -> str:
        return "".join(render_suggestion(row) for row in self.suggestions(text))

    def render_summary(self) -> str:
        store = self.store
        if store.start_date is None:
            return ""
        series = summary_series(store.compute_monthly_aggregate(), store.filters.months_to_show)
        notice = discontinued_only_notice(series, store.raw_incidents)
        if notice is not None:
            return render_discontinued_notice(notice)
        return render_summary_chart(
            series,
            store.filters.months_to_show,
            store.start_date,
            store.end_date,
            store.report_date,
            store.current_totals(),
        )

    def render_table(self) -> str:
        store = self.store
        if store.display_state == NO_RESULTS:
            return f'<div class="no-results">{NO_RESULTS_MESSAGE}</div>'
        if store.start_date is None:
            return ""
        rows = build_rows(
            store.products,
            store.accented_products,
            store.raw_incidents,
            store.start_date,
            store.end_date,
            store.report_date,
            self.layout,
        )
        return render_table(rows, SvgRenderPort(), self.layout)

    def render(self) -> Dict[str, str]:
        self.last_render = {"summary": self.render_summary(), "table": self.render_table()}
        return self.last_render


def render_product_page(client: AbstractShortageClient, product_id: int) -> str:
    """Status, availability donut and incident timeline of one product."""
    rows = client.get_product_incidents(product_id)
    incidents = parse_incidents(rows)
    cis_codes = sorted({code for incident in incidents for code in incident.cis_codes})
    detail = build_product_detail(
        incidents,
        parse_date(client.get_report_date()),
        client.get_sales(cis_codes) if cis_codes else [],
    )
    if detail is None:
        return ""
    title = incidents[0].accented_product if incidents else ""
    ema_incidents = client.get_ema_incidents(cis_codes) if cis_codes else []
    return (
        f"<h1>{escape(title)}</h1>"
        f'<div class="productpg-status {detail.status.css_class}">{detail.status.text}</div>'
        f"{render_donut(detail.availability.score)}"
        f"{render_detail_timeline(detail.bars, OBSERVATION_START, detail.report_date)}"
        f'<div id="ema-incidents">{render_ema_incidents(ema_incidents)}</div>'
    )


def render_substitutions_page(client: AbstractShortageClient, cis_code: str) -> str:
    groups = group_substitutions(client.get_substitutions(cis_code), cis_code)
    return (
        f"<h1>Alternatives au CIS {escape(cis_code)}</h1>"
        f'<div id="substitutions">{render_substitution_groups(groups)}</div>'
    )


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="fr">
<head><meta charset="utf-8"><title>Dispomed</title></head>
<body>
{summary}
{table}
</body>
</html>
"""


def main():
    parser = argparse.ArgumentParser(description="Render the shortage dashboard to a static HTML page")
    parser.add_argument("--api-url", default=None, help="Base URL of the shortage API")
    parser.add_argument("--output", type=Path, default=Path("dashboard.html"), help="HTML file to write")
    parser.add_argument("--months", type=int, default=12, help="Number of months to show")
    parser.add_argument("--all-time", action="store_true", help="Show the whole history")
    parser.add_argument("--search", default="", help="Product or molecule to search for")
    parser.add_argument("--atc-class", default="", help="ATC class letter")
    parser.add_argument("--vaccines-only", action="store_true", help="Only show vaccines")
    page = parser.add_mutually_exclusive_group()
    page.add_argument("--product-id", type=int, default=None, help="Render one product page instead")
    page.add_argument("--product-name", default=None, help="Render the page of the product with this name")
    page.add_argument("--cis-code", default=None, help="Render the alternatives to this CIS code")
    args = parser.parse_args()

    client = HTTPShortageClient(base_url=args.api_url or config.get_api_url())
    try:
        if args.product_name is not None:
            product = client.get_product(args.product_name)
            html = render_product_page(client, product["id"])
        elif args.product_id is not None:
            html = render_product_page(client, args.product_id)
        elif args.cis_code is not None:
            html = render_substitutions_page(client, args.cis_code)
        else:
            dashboard = Dashboard(DashboardContext(client=client))
            dashboard.start()
            dashboard.dispatch(commands.SetPeriod(months_to_show=args.months, all_time=args.all_time))
            if args.search:
                dashboard.dispatch(commands.SetSearchTerm(args.search))
            if args.atc_class:
                dashboard.dispatch(commands.SetAtcClass(args.atc_class))
            if args.vaccines_only:
                dashboard.dispatch(commands.SetVaccinesOnly(True))
            html = PAGE_TEMPLATE.format(**dashboard.render())
    except ShortageClientError as e:
        logger.error(f"Failed to fetch data from the shortage API: {e}")
        sys.exit(1)

    args.output.write_text(html, encoding="utf-8")
    logger.info(f"Wrote {args.output}")


if __name__ == "__main__":
    main()
