"""Search box helpers: accent folding and the status badge of a suggestion."""

import unicodedata
from typing import Any, Dict

MIN_SEARCH_LENGTH = 2


def remove_accents(text: str) -> str:
    """Strip combining marks after NFD decomposition (``Paracétamol`` -> ``Paracetamol``)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalise_search_term(text: str) -> str:
    return remove_accents(text or "").strip().lower()


def is_searchable(text: str) -> bool:
    return len((text or "").strip()) >= MIN_SEARCH_LENGTH


def status_badge(suggestion: Dict[str, Any]) -> str:
    """
    Status shown next to a search suggestion.

    The server's ``current_status`` wins; otherwise the aggregated
    ``statuses`` decide with priority Arret > Rupture > Tension, the last
    two only when the product is within the current period.
    """
    if suggestion.get("current_status"):
        return suggestion["current_status"]
    statuses = suggestion.get("statuses")
    if not statuses:
        return "Disponible"
    statuses = statuses.split(", ")
    in_filter = bool(suggestion.get("in_current_filter"))
    if "Arret" in statuses:
        return "Arret"
    if "Rupture" in statuses and in_filter:
        return "Rupture"
    if "Tension" in statuses and in_filter:
        return "Tension"
    return "Disponible"


def status_badge_class(suggestion: Dict[str, Any]) -> str:
    return f"search-status-badge status-{status_badge(suggestion).lower()}"
