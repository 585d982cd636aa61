"""Unit tests for date helpers and French duration formatting."""
from datetime import date

import pytest

from shared.domain import dates


class TestMonthArithmetic:
    def test_add_months_crosses_year(self):
        assert dates.add_months(date(2023, 11, 1), 2) == date(2024, 1, 1)
        assert dates.add_months(date(2024, 1, 1), -1) == date(2023, 12, 1)

    def test_month_range_is_half_open(self):
        assert dates.month_range(date(2024, 1, 1), date(2024, 4, 1)) == [
            date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1),
        ]

    def test_month_range_mid_month_start_rolls_forward(self):
        assert dates.month_range(date(2024, 1, 15), date(2024, 3, 1)) == [date(2024, 2, 1)]

    def test_month_range_empty(self):
        assert dates.month_range(date(2024, 3, 1), date(2024, 3, 1)) == []

    def test_months_since_counts_both_ends(self):
        assert dates.months_since(date(2021, 5, 1), date(2021, 5, 20)) == 1
        assert dates.months_since(date(2021, 5, 1), date(2024, 6, 10)) == 38

    def test_days_between(self):
        assert dates.days_between(date(2024, 6, 1), date(2024, 6, 10)) == 9
        assert dates.days_between(date(2024, 6, 10), date(2024, 6, 1)) == -9


class TestRounding:
    @pytest.mark.parametrize("value,expected", [(2.5, 3), (3.5, 4), (0.5, 1), (2.49, 2)])
    def test_halves_round_up(self, value, expected):
        assert dates.round_half_up(value) == expected

    def test_one_decimal(self):
        assert dates.round_half_up(12.25, 1) == pytest.approx(12.3)
        assert dates.round_half_up(99.04, 1) == pytest.approx(99.0)


class TestFormatDurationSince:
    @pytest.mark.parametrize("days,expected", [
        (0, "depuis 0 jour"),
        (1, "depuis 1 jour"),
        (6, "depuis 6 jours"),
        (7, "depuis 1 semaine"),
        (10, "depuis 1 semaine"),
        (11, "depuis 2 semaines"),
        (45, "depuis 2 mois"),
        (400, "depuis 1 an"),
        (800, "depuis 2 ans"),
    ])
    def test_thresholds(self, days, expected):
        assert dates.format_duration_since(days) == expected


class TestDaysToYearsMonths:
    @pytest.mark.parametrize("days,expected", [
        (None, "0 jour"),
        (0, "0 jour"),
        (-3, "0 jour"),
        (1, "1 jour"),
        (30, "1 mois"),
        (365, "1 an"),
        (395, "1 an et 1 mois"),
        (433, "1 an, 2 mois et 8 jours"),
        (800, "2 ans, 2 mois et 10 jours"),
    ])
    def test_spelled_out(self, days, expected):
        assert dates.days_to_years_months(days) == expected


class TestFormatting:
    def test_french_date(self):
        assert dates.format_french_date(date(2024, 6, 5)) == "5 juin 2024"
        assert dates.format_french_date(date(2023, 8, 15)) == "15 août 2023"

    def test_month_year(self):
        assert dates.format_month_year(date(2023, 4, 1)) == "04/23"

    def test_iso(self):
        assert dates.format_iso(date(2024, 6, 10)) == "2024-06-10"
        assert dates.format_iso(None) is None
