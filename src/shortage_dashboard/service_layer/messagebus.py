# pylint: disable=broad-except
"""
Message bus for the shortage dashboard.

Commands change the filters or load data and return a value to the caller;
the events they record on the context are processed in the same call,
which is how a filter change turns into a reload. A command failure
propagates to the dashboard. An event handler failure (typically the API
being unreachable during a reload) is logged and the remaining handlers
still run, so the filter change itself sticks.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Type, TYPE_CHECKING

from shared.domain.commands import Command, Event, Message
from shortage_dashboard.domain import commands, events
from shortage_dashboard.service_layer import handlers

if TYPE_CHECKING:
    from shortage_dashboard.service_layer.context import DashboardContext

logger = logging.getLogger(__name__)


def handle(message: Message, context: DashboardContext) -> List[Any]:
    """Process ``message`` and every event it leads to; returns the command results in order."""
    results = []
    queue: Deque[Message] = deque([message])

    while queue:
        message = queue.popleft()
        if isinstance(message, Command):
            results.append(handle_command(message, queue, context))
        elif isinstance(message, Event):
            handle_event(message, queue, context)
        else:
            raise TypeError(f"{message!r} is neither a dashboard command nor an event")

    return results


def handle_event(event: Event, queue: Deque[Message], context: DashboardContext):
    for handler in EVENT_HANDLERS.get(type(event), []):
        try:
            logger.debug(f"{type(event).__name__} -> {handler.__name__}")
            handler(event, context=context)
        except Exception:
            logger.exception("Exception handling event %s", event)
        # events recorded before a failure are still processed
        queue.extend(context.collect_new_events())


def handle_command(command: Command, queue: Deque[Message], context: DashboardContext) -> Any:
    handler = COMMAND_HANDLERS.get(type(command))
    if handler is None:
        raise ValueError(f"No handler registered for {type(command).__name__}")
    logger.debug(f"handling command {command}")
    try:
        result = handler(command, context=context)
    except Exception:
        logger.exception("Exception handling command %s", command)
        raise
    finally:
        queue.extend(context.collect_new_events())
    return result


EVENT_HANDLERS = {
    events.FiltersChanged: [handlers.refresh_on_filters_changed],
    events.IncidentsLoaded: [handlers.record_load],
    events.StaleResponseDiscarded: [handlers.count_stale_response],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.SetSearchTerm: handlers.set_search_term,
    commands.SetAtcClass: handlers.set_atc_class,
    commands.SetMolecule: handlers.set_molecule,
    commands.SetPeriod: handlers.set_period,
    commands.SetVaccinesOnly: handlers.set_vaccines_only,
    commands.ResetFilters: handlers.reset_filters,
    commands.SelectSuggestion: handlers.select_suggestion,
    commands.LoadIncidents: handlers.load_incidents,
    commands.LoadAtcClasses: handlers.load_atc_classes,
}  # type: Dict[Type[Command], Callable]
