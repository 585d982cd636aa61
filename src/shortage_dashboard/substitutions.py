"""Ranking and grouping of therapeutic alternatives for a CIS code."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

GENERIQUE_OFFICIEL = "GENERIQUE_OFFICIEL"
SIMILITUDE_THERAPEUTIQUE = "SIMILITUDE_THERAPEUTIQUE"
ALTERNATIVE_THERAPEUTIQUE = "ALTERNATIVE_THERAPEUTIQUE"

TYPE_ORDER = {
    GENERIQUE_OFFICIEL: 1,
    SIMILITUDE_THERAPEUTIQUE: 2,
    ALTERNATIVE_THERAPEUTIQUE: 3,
}
UNLISTED_TYPE_ORDER = 99

DISPLAY_ORDER = (GENERIQUE_OFFICIEL, SIMILITUDE_THERAPEUTIQUE, ALTERNATIVE_THERAPEUTIQUE)

GROUP_TITLES = {
    GENERIQUE_OFFICIEL: "Génériques officiels",
    SIMILITUDE_THERAPEUTIQUE: "Similitude thérapeutique (même classe ou cible thérapeutique)",
    ALTERNATIVE_THERAPEUTIQUE: "Alternatives thérapeutiques (selon indication et utilisation)",
}

NOT_SPECIFIED = "Non spécifié"


@dataclass(frozen=True)
class ScoreBreakdown:
    atc: str = "-"
    form: str = "-"
    strength: str = "-"
    route: str = "-"

    @property
    def comment(self) -> str:
        if self.atc == "100%" and self.form == "100%" and self.strength == "100%" and self.route == "100%":
            return "Produit identique"
        if self.atc == "100%" and self.form == "100%" and self.strength != "100%" and self.route == "100%":
            return "Produit identique avec dosage différent"
        if self.atc == "100%" and self.form != "100%":
            return "Forme différente"
        if self.atc != "100%":
            return "Classe thérapeutique différente"
        return "Voir détails"


@dataclass(frozen=True)
class Alternative:
    code_cis: str
    denomination: str
    score: Optional[float]
    type_equivalence: str
    reason: str
    breakdown: Optional[ScoreBreakdown]

    @property
    def score_percent(self) -> str:
        if self.score is None:
            return "-"
        return f"{self.score * 100:.0f}%"

    @property
    def comment(self) -> str:
        if self.breakdown is not None:
            return self.breakdown.comment
        return self.reason or NOT_SPECIFIED


@dataclass(frozen=True)
class SubstitutionGroup:
    type_equivalence: str
    title: str
    alternatives: List[Alternative]


def _percent(raw: str) -> str:
    try:
        return f"{float(raw) * 100:.0f}%"
    except ValueError:
        return "-"


def parse_reason(reason: Optional[str]) -> Optional[ScoreBreakdown]:
    """``"ATC: 1.0 | Form: 0.5 | Strength: 1 | Route: 1"`` -> per-criterion percentages."""
    if not reason or ("DCI:" not in reason and "ATC:" not in reason):
        return None
    scores = {}
    for part in (p.strip() for p in reason.split("|")):
        name, _, value = part.partition(":")
        if name in ("DCI", "ATC"):
            scores["atc"] = _percent(value)
        elif name == "Form":
            scores["form"] = _percent(value)
        elif name == "Strength":
            scores["strength"] = _percent(value)
        elif name == "Route":
            scores["route"] = _percent(value)
    return ScoreBreakdown(**scores)


def _alternative(row: Dict[str, Any], cis_code: str) -> Alternative:
    is_origin = str(row.get("code_cis_origine")) == str(cis_code)
    if is_origin:
        code, name = row.get("code_cis_cible"), row.get("denomination_cible")
    else:
        code, name = row.get("code_cis_origine"), row.get("denomination_origine")
    score = row.get("score_similarite")
    return Alternative(
        code_cis=str(code),
        denomination=name or "",
        score=float(score) if score is not None else None,
        type_equivalence=row.get("type_equivalence") or "",
        reason=row.get("raison") or "",
        breakdown=parse_reason(row.get("raison")),
    )


def rank_substitutions(rows: List[Dict[str, Any]], cis_code: str) -> List[Alternative]:
    """
    Alternatives sorted by equivalence type (stable within a type), keeping
    the first row for each alternative CIS code.
    """
    ordered = sorted(
        rows, key=lambda row: TYPE_ORDER.get(row.get("type_equivalence"), UNLISTED_TYPE_ORDER)
    )
    seen = set()
    alternatives = []
    for row in ordered:
        alternative = _alternative(row, cis_code)
        if alternative.code_cis in seen:
            continue
        seen.add(alternative.code_cis)
        alternatives.append(alternative)
    return alternatives


def group_substitutions(rows: List[Dict[str, Any]], cis_code: str) -> List[SubstitutionGroup]:
    """Non-empty groups in display order; unlisted equivalence types are not shown."""
    alternatives = rank_substitutions(rows, cis_code)
    groups = []
    for type_equivalence in DISPLAY_ORDER:
        members = [a for a in alternatives if a.type_equivalence == type_equivalence]
        if members:
            groups.append(SubstitutionGroup(type_equivalence, GROUP_TITLES[type_equivalence], members))
    return groups
