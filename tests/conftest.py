# pylint: disable=redefined-outer-name
from datetime import date
from typing import Any, Dict, List

import pytest

from shortage_api.service_layer.unit_of_work import AbstractUnitOfWork, QueryResult
from shortage_dashboard.adapters.api_client import AbstractShortageClient, ShortageClientError
from shortage_dashboard.service_layer.context import DashboardContext
from shortage_dashboard.store import AggregationStore


def incident_row(**overrides) -> Dict[str, Any]:
    """An incident as returned by /api/incidents."""
    row = {
        "product": "DOLIPRANE 500 mg, comprimé",
        "accented_product": "DOLIPRANE 500 mg, comprimé",
        "product_id": 1,
        "status": "Rupture",
        "start_date": "2024-01-10",
        "end_date": None,
        "calculated_end_date": "2024-06-10",
        "cis_codes": ["60234100"],
        "molecule": "paracétamol",
        "molecule_id": 10,
        "atc_code": "N02BE01",
        "classe_atc": "N - Système nerveux",
    }
    row.update(overrides)
    return row


class FakeUnitOfWork(AbstractUnitOfWork):
    """
    Unit of work answering canned rows per SQL text.

    Unknown queries return no rows; ``error`` is raised by every query
    when set.
    """

    def __init__(self, results: Dict[str, List[Dict[str, Any]]] = None, error: Exception = None):
        self.results = results or {}
        self.error = error
        self.queries = []
        self.entered = 0
        self.rolled_back = False

    def __enter__(self):
        self.entered += 1
        return super().__enter__()

    def _query(self, sql, params):
        self.queries.append((sql, params))
        if self.error is not None:
            raise self.error
        return QueryResult(rows=[dict(row) for row in self.results.get(sql, [])])

    def rollback(self):
        self.rolled_back = True


class FakeShortageClient(AbstractShortageClient):
    def __init__(self, incidents=None, report_date="2024-06-10", atc_rows=None):
        self.incidents = incidents if incidents is not None else []
        self.report_date = report_date
        self.atc_rows = atc_rows or []
        self.incident_requests = []
        self.suggestions = []
        self.substitutions = []
        self.sales = []
        self.product_incidents = {}
        self.products = {}
        self.ema_incidents = []
        self.ema_requests = []

    def get_incidents(self, params):
        self.incident_requests.append(dict(params))
        return [dict(row) for row in self.incidents]

    def get_product_incidents(self, product_id):
        return self.product_incidents.get(product_id, [])

    def get_product(self, product_name):
        try:
            return self.products[product_name.lower()]
        except KeyError as e:
            raise ShortageClientError(f"Not found: /api/product/{product_name}", status_code=404) from e

    def get_report_date(self):
        return self.report_date

    def get_atc_classes(self, months_to_show):
        return self.atc_rows

    def get_sales(self, cis_codes):
        return self.sales

    def get_ema_incidents(self, cis_codes):
        self.ema_requests.append(list(cis_codes))
        return self.ema_incidents

    def search_suggestions(self, search_term, months_to_show=12):
        return self.suggestions

    def get_substitutions(self, cis_code):
        return self.substitutions


class FakeTimer:
    """Stand-in for threading.Timer that fires only when told to."""

    created = []

    def __init__(self, delay, function, args=None, kwargs=None):
        self.delay = delay
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


@pytest.fixture
def fake_timer():
    FakeTimer.created = []
    return FakeTimer


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


@pytest.fixture
def fake_client():
    return FakeShortageClient(incidents=[incident_row()])


@pytest.fixture
def context(fake_client):
    return DashboardContext(store=AggregationStore(), client=fake_client)


@pytest.fixture
def report_date():
    return date(2024, 6, 10)


@pytest.fixture
def make_row():
    return incident_row


@pytest.fixture
def uow_factory():
    return FakeUnitOfWork


@pytest.fixture
def client_factory():
    return FakeShortageClient
