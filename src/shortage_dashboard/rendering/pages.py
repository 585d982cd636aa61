"""HTML fragments of the product and substitution pages."""
from html import escape
from typing import Any, Dict, List

from shared.domain.dates import format_french_date
from shared.domain.model import parse_date
from shortage_dashboard.search import status_badge, status_badge_class
from shortage_dashboard.substitutions import GENERIQUE_OFFICIEL, Alternative, SubstitutionGroup

NO_ALTERNATIVES_MESSAGE = "Aucune alternative thérapeutique directe trouvée."
NO_EMA_INCIDENTS_MESSAGE = "Aucun incident EMA lié trouvé pour ce produit."

EMA_STATUS_LABELS = {"Ongoing": "En cours", "Resolved": "Terminé"}

_SIMPLE_HEADER = "<tr><th>Produit (code CIS)</th><th>Score de similarité</th><th>Raison</th></tr>"
_DETAILED_HEADER = (
    "<tr><th>Produit (code CIS)</th>"
    '<th class="score-final-header">Score de similarité</th>'
    "<th>ATC</th><th>Forme</th><th>Dosage</th><th>Voie</th><th>Commentaire</th></tr>"
)


def _product_cell(alternative: Alternative) -> str:
    return (
        f"<td><strong>{escape(alternative.denomination)}</strong><br>"
        f"<small>CIS: {escape(alternative.code_cis)}</small></td>"
    )


def _simple_row(alternative: Alternative) -> str:
    return (
        f"<tr>{_product_cell(alternative)}"
        f"<td>{alternative.score_percent}</td>"
        f"<td>{escape(alternative.reason or 'Non spécifié')}</td></tr>"
    )


def _detailed_row(alternative: Alternative) -> str:
    breakdown = alternative.breakdown
    scores = (
        [breakdown.atc, breakdown.form, breakdown.strength, breakdown.route]
        if breakdown is not None
        else ["-"] * 4
    )
    cells = "".join(f"<td>{score}</td>" for score in scores)
    return (
        f"<tr>{_product_cell(alternative)}"
        f'<td class="score-final-cell">{alternative.score_percent}</td>'
        f"{cells}<td>{escape(alternative.comment)}</td></tr>"
    )


def render_substitution_groups(groups: List[SubstitutionGroup]) -> str:
    """One titled table per group; official generics keep the short three-column layout."""
    if not groups:
        return f'<p class="no-data-message">{NO_ALTERNATIVES_MESSAGE}</p>'
    parts = []
    for group in groups:
        simple = group.type_equivalence == GENERIQUE_OFFICIEL
        header = _SIMPLE_HEADER if simple else _DETAILED_HEADER
        row = _simple_row if simple else _detailed_row
        body = "".join(row(alternative) for alternative in group.alternatives)
        parts.append(
            f'<h2 class="substitution-group-title">{escape(group.title)}</h2>'
            f'<table class="substitutions-table"><thead>{header}</thead><tbody>{body}</tbody></table>'
        )
    return "".join(parts)


def _french_date(value: Any) -> str:
    day = parse_date(str(value)[:10]) if value else None
    return format_french_date(day) if day else ""


def render_ema_incidents(rows: List[Dict[str, Any]]) -> str:
    """European shortage reports linked to the product's CIS codes."""
    if not rows:
        return f'<div class="ema-empty-state">{NO_EMA_INCIDENTS_MESSAGE}</div>'
    items = []
    for row in rows:
        status = row.get("status") or ""
        css = "ongoing" if status == "Ongoing" else "resolved"
        title = row.get("product_name") or row.get("title") or row.get("incident_id") or ""
        details = [
            ("Date de première publication", _french_date(row.get("first_published"))),
            ("Raison de l'incident", row.get("reason_for_shortage_fr")),
            ("Pays touchés", row.get("member_states_affected_fr")),
            ("Résolution attendue", _french_date(row.get("expected_resolution"))),
        ]
        detail_rows = "".join(
            f'<div class="ema-detail-row"><div class="ema-detail-label">{label}</div>'
            f'<div class="ema-detail-value">{escape(str(value))}</div></div>'
            for label, value in details
            if value
        )
        items.append(
            '<div class="ema-incident-item">'
            f'<div class="ema-incident-title">{escape(str(title))}</div>'
            f'<div class="ema-incident-status"><span class="ema-status-badge {css}">'
            f"{EMA_STATUS_LABELS.get(status, escape(status))}</span></div>"
            f"{detail_rows}</div>"
        )
    return f'<div class="ema-incidents-list">{"".join(items)}</div>'


def render_suggestion(suggestion: Dict[str, Any]) -> str:
    name = suggestion.get("accented_product") or suggestion.get("product") or ""
    return (
        f'<div class="search-suggestion">{escape(name)}'
        f'<span class="{status_badge_class(suggestion)}">{status_badge(suggestion)}</span></div>'
    )
