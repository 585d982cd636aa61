"""Date helpers: month arithmetic and French duration formatting."""

import math
from datetime import date
from typing import List, Optional

FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end precedes start)."""
    return (end - start).days


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift a first-of-month date by ``months`` (may be negative)."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_range(start: date, end: date) -> List[date]:
    """First days of every month in ``[start, end)``; a mid-month start rolls forward."""
    current = first_of_month(start)
    if current < start:
        current = add_months(current, 1)
    months = []
    while current < end:
        months.append(current)
        current = add_months(current, 1)
    return months


def months_since(epoch: date, report_date: date) -> int:
    """Calendar months from the epoch month up to and including the report month."""
    return (report_date.year - epoch.year) * 12 + (report_date.month - epoch.month) + 1


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values, as dashboards display them."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count <= 1 else plural}"


def format_duration_since(days: int) -> str:
    """Coarse French duration for 'en rupture depuis ...' labels."""
    if days < 7:
        return f"depuis {_plural(days, 'jour', 'jours')}"
    if days < 30:
        return f"depuis {_plural(int(round_half_up(days / 7)), 'semaine', 'semaines')}"
    if days < 365:
        return f"depuis {int(round_half_up(days / 30))} mois"
    return f"depuis {_plural(int(round_half_up(days / 365)), 'an', 'ans')}"


def days_to_years_months(days: Optional[int]) -> str:
    """Spell out a day count as years, months and days, e.g. ``1 an, 2 mois et 3 jours``."""
    if not days or days <= 0:
        return "0 jour"
    years, rest = divmod(days, 365)
    months, remaining = divmod(rest, 30)

    parts = []
    if years:
        parts.append(_plural(years, "an", "ans"))
    if months:
        parts.append(f"{months} mois")
    if remaining:
        parts.append(_plural(remaining, "jour", "jours"))

    if len(parts) == 1:
        return parts[0]
    return ", ".join(parts[:-1]) + " et " + parts[-1]


def format_french_date(day: date) -> str:
    """``5 juin 2024``"""
    return f"{day.day} {FRENCH_MONTHS[day.month - 1]} {day.year}"


def format_month_year(day: date) -> str:
    """``06/24``"""
    return day.strftime("%m/%y")


def format_iso(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None
