"""Unit tests for the dashboard message bus and handlers."""
from dataclasses import dataclass
from datetime import date

import pytest

from shared.domain.commands import Command
from shortage_dashboard.domain import commands, events
from shortage_dashboard.service_layer import handlers, messagebus
from shortage_dashboard.store import FilterState, months_for_all_time


class TestFilterCommands:
    def test_search_term_reloads_incidents(self, context, fake_client):
        messagebus.handle(commands.SetSearchTerm("  doliprane "), context)

        assert context.store.filters.search_term == "doliprane"
        assert fake_client.incident_requests == [
            {"monthsToShow": "12", "product": "doliprane", "atcClass": ""},
        ]
        assert context.store.products == ["DOLIPRANE 500 mg, comprimé"]

    def test_unchanged_filters_do_not_reload(self, context, fake_client):
        messagebus.handle(commands.SetSearchTerm(""), context)
        assert fake_client.incident_requests == []

    def test_atc_class_clears_molecule(self, context):
        context.store.set_filters(FilterState(molecule_id="10"))
        messagebus.handle(commands.SetAtcClass("J"), context)

        assert context.store.filters.atc_class == "J"
        assert context.store.filters.molecule_id == ""

    def test_vaccines_only(self, context, fake_client):
        messagebus.handle(commands.SetVaccinesOnly(True), context)
        assert fake_client.incident_requests[-1]["vaccinesOnly"] == "true"

    def test_reset_keeps_period(self, context):
        context.store.set_filters(FilterState(search_term="x", atc_class="N", months_to_show=24))
        messagebus.handle(commands.ResetFilters(), context)
        assert context.store.filters == FilterState(months_to_show=24)


class TestPeriod:
    def test_explicit_months(self, context, fake_client):
        messagebus.handle(commands.SetPeriod(months_to_show=6), context)
        assert context.store.filters.months_to_show == 6
        assert fake_client.incident_requests[-1]["monthsToShow"] == "6"

    def test_all_time_uses_store_report_date(self, context):
        context.store.report_date = date(2024, 6, 10)
        messagebus.handle(commands.SetPeriod(all_time=True), context)
        assert context.store.filters.months_to_show == months_for_all_time(date(2024, 6, 10))

    def test_all_time_asks_api_without_report_date(self, context, fake_client):
        fake_client.report_date = "2023-05-20"
        messagebus.handle(commands.SetPeriod(all_time=True), context)
        assert context.store.filters.months_to_show == 25

    def test_all_time_without_any_report_date_fails(self, context, fake_client):
        fake_client.report_date = None
        with pytest.raises(ValueError):
            messagebus.handle(commands.SetPeriod(all_time=True), context)

    def test_invalid_months_rejected(self, context):
        with pytest.raises(ValueError):
            messagebus.handle(commands.SetPeriod(months_to_show=0), context)


class TestSelectSuggestion:
    def test_in_period_keeps_months(self, context):
        messagebus.handle(commands.SelectSuggestion(
            {"product": "DOLIPRANE", "accented_product": "DOLIPRANE", "in_current_filter": True}
        ), context)
        assert context.store.filters.search_term == "DOLIPRANE"
        assert context.store.filters.months_to_show == 12

    def test_out_of_period_switches_to_all_time(self, context, fake_client):
        messagebus.handle(commands.SelectSuggestion(
            {"product": "OLD", "accented_product": "ÔLD", "in_current_filter": False}
        ), context)
        assert context.store.filters.search_term == "ÔLD"
        assert context.store.filters.months_to_show == months_for_all_time(date(2024, 6, 10))


class TestLastRequestWins:
    def test_stale_response_is_discarded(self, context, make_row):
        older = context.sequencer.issue()
        newer = context.sequencer.issue()

        assert handlers.apply_incidents(context, newer, [make_row(product="NEW")]) is True
        assert handlers.apply_incidents(context, older, [make_row(product="OLD")]) is False

        assert context.store.products == ["NEW"]
        collected = list(context.collect_new_events())
        assert isinstance(collected[0], events.IncidentsLoaded)
        assert collected[1] == events.StaleResponseDiscarded(token=older, latest_token=newer)

    def test_out_of_order_arrival_keeps_latest(self, context, make_row):
        first = context.sequencer.issue()
        second = context.sequencer.issue()

        handlers.apply_incidents(context, second, [make_row(product="SECOND")])
        handlers.apply_incidents(context, first, [make_row(product="FIRST")])

        assert context.store.products == ["SECOND"]

    def test_load_incidents_returns_applied_flag(self, context):
        assert messagebus.handle(commands.LoadIncidents(), context) == [True]
        assert context.sequencer.latest == 1


def test_load_atc_classes(context, fake_client):
    fake_client.atc_rows = [{"classe_atc": "N - Système nerveux", "molecule_id": 10, "molecule": "x"}]
    result = messagebus.handle(commands.LoadAtcClasses(), context)
    assert [c.code for c in result[0]] == ["N"]


def test_failing_refresh_is_logged(context, fake_client, caplog):
    def broken(params):
        raise RuntimeError("API down")

    fake_client.get_incidents = broken
    messagebus.handle(commands.SetSearchTerm("doli"), context)

    assert context.store.filters.search_term == "doli"
    assert "Exception handling event" in caplog.text


class TestLoadBookkeeping:
    def test_applied_load_is_recorded(self, context):
        messagebus.handle(commands.LoadIncidents(), context)

        assert context.last_load.token == 1
        assert context.last_load.incident_count == 1
        assert context.stale_responses == 0

    def test_stale_responses_are_counted(self, context, make_row):
        older = context.sequencer.issue()
        newer = context.sequencer.issue()
        handlers.apply_incidents(context, newer, [make_row(product="NEW")])
        handlers.apply_incidents(context, older, [make_row(product="OLD")])

        for event in list(context.collect_new_events()):
            messagebus.handle(event, context)

        assert context.stale_responses == 1
        assert context.last_load.token == newer


@dataclass
class Unregistered(Command):
    pass


def test_unregistered_command_is_rejected(context):
    with pytest.raises(ValueError, match="No handler registered for Unregistered"):
        messagebus.handle(Unregistered(), context)


def test_non_message_is_rejected(context):
    with pytest.raises(TypeError):
        messagebus.handle("reload", context)
