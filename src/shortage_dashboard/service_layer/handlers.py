import logging
from typing import Any, Dict, List

from shortage_dashboard.adapters.api_client import ShortageClientError
from shortage_dashboard.domain import commands, events
from shortage_dashboard.service_layer.context import DashboardContext
from shortage_dashboard.store import FilterState, months_for_all_time
from shared.domain.model import parse_date

logger = logging.getLogger(__name__)


def _change_filters(context: DashboardContext, **changes):
    store = context.store
    filters = store.filters.replace(**changes)
    if filters == store.filters:
        logger.debug(f"Filters unchanged: {filters}")
        return
    store.set_filters(filters)
    context.events.append(events.FiltersChanged(filters=filters))


def set_search_term(command: commands.SetSearchTerm, context: DashboardContext):
    _change_filters(context, search_term=command.search_term.strip())


def set_atc_class(command: commands.SetAtcClass, context: DashboardContext):
    _change_filters(context, atc_class=command.atc_class, molecule_id="")


def set_molecule(command: commands.SetMolecule, context: DashboardContext):
    _change_filters(context, molecule_id=command.molecule_id)


def set_vaccines_only(command: commands.SetVaccinesOnly, context: DashboardContext):
    _change_filters(context, vaccines_only=command.vaccines_only)


def _all_time_months(context: DashboardContext) -> int:
    report_date = context.store.report_date
    if report_date is None:
        report_date = parse_date(context.client.get_report_date())
    if report_date is None:
        raise ValueError("Cannot select the whole history without a report date")
    return months_for_all_time(report_date)


def set_period(command: commands.SetPeriod, context: DashboardContext):
    """
    Change the period. ``all_time`` counts the months from the epoch to the
    report month, inclusive.
    """
    months = _all_time_months(context) if command.all_time else command.months_to_show
    _change_filters(context, months_to_show=months)


def reset_filters(command: commands.ResetFilters, context: DashboardContext):
    months = context.store.filters.months_to_show
    filters = FilterState(months_to_show=months)
    if filters != context.store.filters:
        context.store.set_filters(filters)
        context.events.append(events.FiltersChanged(filters=filters))


def select_suggestion(command: commands.SelectSuggestion, context: DashboardContext):
    """Search for the picked product, widening to the whole history when it is out of period."""
    suggestion = command.suggestion
    changes = {"search_term": suggestion.get("accented_product") or suggestion.get("product") or ""}
    if not suggestion.get("in_current_filter"):
        changes["months_to_show"] = _all_time_months(context)
        logger.info(f"Switching to the whole history for {changes['search_term']}")
    _change_filters(context, **changes)


def apply_incidents(context: DashboardContext, token: int, rows: List[Dict[str, Any]]) -> bool:
    """
    Apply a fetch response unless a newer request was issued after it.

    Returns True when the store was updated.
    """
    if not context.sequencer.is_current(token):
        logger.warning(
            f"Discarding stale incidents response {token} (latest {context.sequencer.latest})"
        )
        context.events.append(
            events.StaleResponseDiscarded(token=token, latest_token=context.sequencer.latest)
        )
        return False

    store = context.store
    incidents = store.ingest(rows, store.filters.months_to_show)
    context.events.append(
        events.IncidentsLoaded(
            token=token, incident_count=len(incidents), report_date=store.report_date
        )
    )
    return True


def load_incidents(command: commands.LoadIncidents, context: DashboardContext) -> bool:
    """Fetch incidents for the current filters and apply them if still the latest request."""
    token = context.sequencer.issue()
    params = context.store.filters.as_query_params()
    logger.info(f"Loading incidents (request {token}) with {params}")
    try:
        rows = context.client.get_incidents(params)
    except ShortageClientError as e:
        logger.error(f"Failed to load incidents for request {token}: {e}")
        raise
    return apply_incidents(context, token, rows)


def load_atc_classes(command: commands.LoadAtcClasses, context: DashboardContext):
    rows = context.client.get_atc_classes(context.store.filters.months_to_show)
    context.store.set_atc_classes(rows)
    return context.store.atc_classes


def refresh_on_filters_changed(event: events.FiltersChanged, context: DashboardContext):
    load_incidents(commands.LoadIncidents(), context)


def record_load(event: events.IncidentsLoaded, context: DashboardContext):
    context.last_load = event
    logger.info(f"Request {event.token} applied: {event.incident_count} incidents, report date {event.report_date}")


def count_stale_response(event: events.StaleResponseDiscarded, context: DashboardContext):
    context.stale_responses += 1
