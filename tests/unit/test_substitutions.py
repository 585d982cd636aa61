"""Unit tests for substitution ranking and grouping."""
from shortage_dashboard.substitutions import (
    ALTERNATIVE_THERAPEUTIQUE,
    GENERIQUE_OFFICIEL,
    SIMILITUDE_THERAPEUTIQUE,
    ScoreBreakdown,
    group_substitutions,
    parse_reason,
    rank_substitutions,
)


def substitution_row(origin, target, type_equivalence, score=0.9, reason=None):
    return {
        "code_cis_origine": origin,
        "denomination_origine": f"Produit {origin}",
        "code_cis_cible": target,
        "denomination_cible": f"Produit {target}",
        "score_similarite": score,
        "type_equivalence": type_equivalence,
        "raison": reason,
    }


class TestRankSubstitutions:
    def test_sorted_by_type_then_stable(self):
        rows = [
            substitution_row("1", "30", ALTERNATIVE_THERAPEUTIQUE),
            substitution_row("1", "20", SIMILITUDE_THERAPEUTIQUE),
            substitution_row("1", "10", GENERIQUE_OFFICIEL),
            substitution_row("1", "11", GENERIQUE_OFFICIEL),
        ]
        ranked = rank_substitutions(rows, "1")
        assert [a.code_cis for a in ranked] == ["10", "11", "20", "30"]

    def test_alternative_is_the_other_side(self):
        ranked = rank_substitutions([substitution_row("5", "1", GENERIQUE_OFFICIEL)], "1")
        assert ranked[0].code_cis == "5"
        assert ranked[0].denomination == "Produit 5"

    def test_duplicates_keep_first_after_sort(self):
        rows = [
            substitution_row("1", "10", SIMILITUDE_THERAPEUTIQUE, score=0.7),
            substitution_row("10", "1", GENERIQUE_OFFICIEL, score=0.95),
        ]
        ranked = rank_substitutions(rows, "1")
        assert len(ranked) == 1
        assert ranked[0].type_equivalence == GENERIQUE_OFFICIEL

    def test_unlisted_types_sort_last(self):
        rows = [
            substitution_row("1", "99", "AUTRE"),
            substitution_row("1", "30", ALTERNATIVE_THERAPEUTIQUE),
        ]
        assert [a.code_cis for a in rank_substitutions(rows, "1")] == ["30", "99"]


def test_group_substitutions_skips_empty_and_unlisted_groups():
    rows = [
        substitution_row("1", "30", ALTERNATIVE_THERAPEUTIQUE),
        substitution_row("1", "10", GENERIQUE_OFFICIEL),
        substitution_row("1", "99", "AUTRE"),
    ]
    groups = group_substitutions(rows, "1")
    assert [g.type_equivalence for g in groups] == [GENERIQUE_OFFICIEL, ALTERNATIVE_THERAPEUTIQUE]
    assert groups[0].title == "Génériques officiels"


class TestReason:
    def test_parse_reason(self):
        breakdown = parse_reason("ATC: 1.0 | Form: 0.5 | Strength: 1 | Route: 1")
        assert breakdown == ScoreBreakdown(atc="100%", form="50%", strength="100%", route="100%")
        assert breakdown.comment == "Forme différente"

    def test_dci_counts_as_atc(self):
        assert parse_reason("DCI: 1 | Form: 1 | Strength: 1 | Route: 1").comment == "Produit identique"

    def test_free_text_is_not_parsed(self):
        assert parse_reason("Même principe actif") is None
        assert parse_reason(None) is None

    def test_comments(self):
        assert ScoreBreakdown("100%", "100%", "50%", "100%").comment == "Produit identique avec dosage différent"
        assert ScoreBreakdown("80%", "100%", "100%", "100%").comment == "Classe thérapeutique différente"
        assert ScoreBreakdown("100%", "100%", "100%", "50%").comment == "Voir détails"

    def test_alternative_comment_and_score(self):
        ranked = rank_substitutions([
            substitution_row("1", "2", GENERIQUE_OFFICIEL, score=0.876, reason="Même principe actif"),
            substitution_row("1", "3", GENERIQUE_OFFICIEL, score=None, reason=None),
        ], "1")
        assert ranked[0].score_percent == "88%"
        assert ranked[0].comment == "Même principe actif"
        assert ranked[1].score_percent == "-"
        assert ranked[1].comment == "Non spécifié"
