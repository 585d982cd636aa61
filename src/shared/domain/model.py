"""Incident domain model shared by the API and the dashboard core."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class Status(str, Enum):
    """Supply status as stored in the ``incidents.status`` column."""
    SHORTAGE = "Rupture"
    TENSION = "Tension"
    DISCONTINUED = "Arret"
    AVAILABLE = "Disponible"


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` value into a date.

    Database drivers hand back ``date``/``datetime`` objects, the JSON API
    hands back strings. Anything that does not parse strictly yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _ISO_DATE.match(value.strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_status(value: Any) -> Optional[Status]:
    try:
        return Status(value)
    except ValueError:
        logger.warning(f"Unrecognised incident status {value!r}")
        return None


@dataclass
class Incident:
    """One period during which a product had a given supply status."""
    product: str
    accented_product: str
    product_id: Optional[int]
    status: Optional[Status]
    start_date: Optional[date]
    end_date: Optional[date]
    calculated_end_date: Optional[date]
    cis_codes: List[str] = field(default_factory=list)
    cis_names: Dict[str, str] = field(default_factory=dict)
    molecule: str = ""
    molecule_id: Optional[int] = None
    atc_code: str = ""
    classe_atc: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Incident":
        """Build an incident from an API/database row dict."""
        product_id = row.get("product_id")
        molecule_id = row.get("molecule_id")
        return cls(
            product=row.get("product") or "",
            accented_product=row.get("accented_product") or row.get("product") or "",
            product_id=int(product_id) if product_id is not None else None,
            status=parse_status(row.get("status")),
            start_date=parse_date(row.get("start_date")),
            end_date=parse_date(row.get("end_date")),
            calculated_end_date=parse_date(row.get("calculated_end_date")),
            cis_codes=[str(code) for code in (row.get("cis_codes") or [])],
            cis_names=dict(row.get("cis_names") or {}),
            molecule=row.get("molecule") or "",
            molecule_id=int(molecule_id) if molecule_id is not None else None,
            atc_code=row.get("atc_code") or "",
            classe_atc=row.get("classe_atc") or "",
        )

    @property
    def package_count(self) -> int:
        """Number of packages affected; an incident without CIS codes counts once."""
        return len(self.cis_codes) or 1

    def is_active_at(self, day: date) -> bool:
        if self.start_date is None or self.calculated_end_date is None:
            return False
        return self.start_date <= day <= self.calculated_end_date

    def attach_cis_names(self, names: Dict[str, str]) -> None:
        self.cis_names = {code: names.get(code, "") for code in self.cis_codes}


def parse_incidents(rows: List[Dict[str, Any]]) -> List[Incident]:
    return [Incident.from_row(row) for row in rows]
