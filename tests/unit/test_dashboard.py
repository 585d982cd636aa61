"""Unit tests for the dashboard session wiring."""
from unittest.mock import patch

import pytest

from shortage_dashboard.entrypoints import dashboard as dashboard_module
from shortage_dashboard.entrypoints.dashboard import (
    NO_RESULTS_MESSAGE,
    Dashboard,
    render_product_page,
    render_substitutions_page,
)
from shortage_dashboard.service_layer.context import DashboardContext
from shortage_dashboard.store import AggregationStore


def make_dashboard(client, fake_timer):
    return Dashboard(DashboardContext(store=AggregationStore(), client=client), timer_factory=fake_timer)


def test_start_loads_incidents_and_classes(client_factory, make_row, fake_timer):
    client = client_factory(incidents=[make_row()], atc_rows=[{"classe_atc": "N - Système nerveux"}])
    dashboard = make_dashboard(client, fake_timer)

    dashboard.start()

    assert len(client.incident_requests) == 1
    assert [c.code for c in dashboard.store.atc_classes] == ["N"]


def test_render_produces_chart_and_table(client_factory, make_row, fake_timer):
    client = client_factory(incidents=[make_row(start_date="2024-06-05", calculated_end_date="2024-06-10")])
    dashboard = make_dashboard(client, fake_timer)
    dashboard.start()

    rendered = dashboard.render()

    assert rendered["summary"].startswith('<svg id="summary"')
    assert 'class="maintbl-row-modern' in rendered["table"]
    assert dashboard.last_render is rendered


def test_no_results_message(client_factory, fake_timer):
    dashboard = make_dashboard(client_factory(incidents=[]), fake_timer)
    dashboard.start()
    assert NO_RESULTS_MESSAGE in dashboard.render_table()


def test_discontinued_only_selection_shows_notice(client_factory, make_row, fake_timer):
    client = client_factory(incidents=[
        make_row(status="Arret", start_date="2024-03-05", calculated_end_date="2024-06-10"),
    ])
    dashboard = make_dashboard(client, fake_timer)
    dashboard.start()
    assert "1 produit arrêté depuis le 5 mars 2024" in dashboard.render_summary()


def test_search_input_is_debounced(client_factory, make_row, fake_timer):
    client = client_factory(incidents=[make_row()])
    dashboard = make_dashboard(client, fake_timer)

    dashboard.search_input("d")
    dashboard.search_input("do")
    dashboard.search_input("doli")
    for timer in fake_timer.created:
        timer.fire()

    assert [r["product"] for r in client.incident_requests] == ["doli"]


def test_resize_rerenders_with_new_width(client_factory, make_row, fake_timer):
    dashboard = make_dashboard(client_factory(incidents=[make_row()]), fake_timer)
    dashboard.start()

    dashboard.resize(900)
    fake_timer.created[-1].fire()

    assert dashboard.layout.width == 900
    assert '<svg width="900"' in dashboard.last_render["table"]


def test_suggestions_need_two_characters(client_factory, fake_timer):
    client = client_factory()
    client.suggestions = [{"product": "DOLIPRANE"}]
    dashboard = make_dashboard(client, fake_timer)

    assert dashboard.suggestions("d") == []
    assert dashboard.suggestions("do") == [{
        "product": "DOLIPRANE",
        "status_badge": "Disponible",
        "badge_class": "search-status-badge status-disponible",
    }]


def test_product_page(client_factory, make_row):
    client = client_factory()
    client.product_incidents[7] = [make_row(accented_product="DOLIPRANE", start_date="2024-06-01",
                                            calculated_end_date="2024-06-10")]
    html = render_product_page(client, 7)

    assert "<h1>DOLIPRANE</h1>" in html
    assert "Rupture de stock" in html
    assert 'class="donut-progress"' in html
    assert 'id="ema-incidents"' in html


def test_rendered_suggestions_carry_status_badges(client_factory, fake_timer):
    client = client_factory()
    client.suggestions = [{"product": "AMOXICILLINE", "statuses": "Rupture, Tension", "in_current_filter": True}]
    dashboard = make_dashboard(client, fake_timer)

    html = dashboard.render_suggestions("amox")

    assert 'class="search-status-badge status-rupture">Rupture</span>' in html
    assert "AMOXICILLINE" in html


def test_product_page_lists_ema_incidents(client_factory, make_row):
    client = client_factory()
    client.product_incidents[7] = [make_row(cis_codes=["60234100", "60234101"])]
    client.ema_incidents = [{"product_name": "Paracetamol", "status": "Ongoing", "first_published": "2024-03-05"}]

    html = render_product_page(client, 7)

    assert client.ema_requests == [["60234100", "60234101"]]
    assert '<span class="ema-status-badge ongoing">En cours</span>' in html
    assert "5 mars 2024" in html


def test_substitutions_page(client_factory):
    client = client_factory()
    client.substitutions = [{
        "code_cis_origine": "1",
        "code_cis_cible": "2",
        "denomination_cible": "PARACETAMOL BIOGARAN",
        "score_similarite": 0.95,
        "type_equivalence": "GENERIQUE_OFFICIEL",
        "raison": "Même DCI",
    }]

    html = render_substitutions_page(client, "1")

    assert "<h1>Alternatives au CIS 1</h1>" in html
    assert "Génériques officiels" in html
    assert "<small>CIS: 2</small>" in html
    assert "<td>95%</td>" in html


class TestMain:
    def run(self, monkeypatch, client, *argv):
        monkeypatch.setattr("sys.argv", ["dispomed-dashboard", *argv])
        with patch.object(dashboard_module, "HTTPShortageClient", return_value=client):
            dashboard_module.main()

    def test_product_name_resolves_to_product_page(self, monkeypatch, tmp_path, client_factory, make_row):
        client = client_factory()
        client.products["doliprane"] = {"id": 7, "name": "DOLIPRANE", "incidents": []}
        client.product_incidents[7] = [make_row(accented_product="DOLIPRANE")]
        output = tmp_path / "product.html"

        self.run(monkeypatch, client, "--product-name", "Doliprane", "--output", str(output))

        assert "<h1>DOLIPRANE</h1>" in output.read_text(encoding="utf-8")

    def test_unknown_product_name_exits(self, monkeypatch, tmp_path, client_factory):
        with pytest.raises(SystemExit) as excinfo:
            self.run(monkeypatch, client_factory(), "--product-name", "nope", "--output", str(tmp_path / "x.html"))
        assert excinfo.value.code == 1

    def test_cis_code_renders_alternatives(self, monkeypatch, tmp_path, client_factory):
        output = tmp_path / "alternatives.html"
        self.run(monkeypatch, client_factory(), "--cis-code", "60234100", "--output", str(output))
        assert "Aucune alternative thérapeutique directe trouvée." in output.read_text(encoding="utf-8")
