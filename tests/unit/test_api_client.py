"""Unit tests for the HTTP shortage API client."""
from unittest.mock import Mock

import pytest
import requests

from shortage_dashboard.adapters.api_client import HTTPShortageClient, ShortageClientError


def make_response(payload=None, status_code=200, json_error=None):
    response = Mock()
    response.status_code = status_code
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} Error")
        error.response = response
        response.raise_for_status.side_effect = error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(session):
    return HTTPShortageClient(base_url="http://api.test", timeout=5, session=session)


class TestHTTPShortageClient:
    def test_get_incidents_passes_filter_params(self, client, session):
        session.get.return_value = make_response([{"product": "A"}])

        result = client.get_incidents({"monthsToShow": "12", "product": "doli"})

        assert result == [{"product": "A"}]
        session.get.assert_called_once_with(
            "http://api.test/api/incidents",
            params={"monthsToShow": "12", "product": "doli"},
            timeout=5,
        )

    def test_report_date(self, client, session):
        session.get.return_value = make_response({"max_report_date": "2024-06-10"})
        assert client.get_report_date() == "2024-06-10"

    def test_sales_join_cis_codes(self, client, session):
        session.get.return_value = make_response([])
        client.get_sales(["1", "2"])
        assert session.get.call_args.kwargs["params"] == {"cis_codes": "1,2"}

    def test_not_found_raises_with_status(self, client, session):
        session.get.return_value = make_response(status_code=404)
        with pytest.raises(ShortageClientError) as excinfo:
            client.get_product("unknown")
        assert excinfo.value.status_code == 404

    def test_server_error_raises(self, client, session):
        session.get.return_value = make_response(status_code=500)
        with pytest.raises(ShortageClientError) as excinfo:
            client.get_incidents({})
        assert excinfo.value.status_code == 500

    def test_network_error_raises(self, client, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ShortageClientError, match="Network error"):
            client.get_incidents({})

    def test_invalid_json_raises(self, client, session):
        session.get.return_value = make_response(json_error=ValueError("no json"))
        with pytest.raises(ShortageClientError, match="Invalid response"):
            client.get_incidents({})

    def test_search_failure_degrades_to_empty(self, client, session):
        session.get.side_effect = requests.exceptions.Timeout("slow")
        assert client.search_suggestions("doli") == []

    def test_substitutions_failure_degrades_to_empty(self, client, session):
        session.get.return_value = make_response(status_code=500)
        assert client.get_substitutions("60234100") == []

    def test_refresh_base_url(self, client, session):
        session.get.return_value = make_response({"API_BASE_URL": "https://dispomed.example"})
        assert client.refresh_base_url() == "https://dispomed.example"
        assert client.base_url == "https://dispomed.example"
