"""
Views for read operations.

Every endpoint of the shortage API is a read: views run parameterised SQL
through the unit of work and return JSON-ready dicts. Dates are
serialised as ``YYYY-MM-DD`` strings so that clients parse them the
same way whatever the driver returned.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from shortage_api import queries
from shortage_api.service_layer.query_cache import QueryCache
from shortage_api.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 20


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _serialize(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{key: _jsonable(value) for key, value in row.items()} for row in rows]


def parse_molecule_ids(molecule: str) -> List[int]:
    """``"12, 7"`` -> ``[12, 7]``; raises ValueError on a non-numeric id."""
    return [int(part.strip()) for part in molecule.split(",") if part.strip()]


def build_incident_filters(
    product: Optional[str] = None,
    atc_class: Optional[str] = None,
    molecule: Optional[str] = None,
    vaccines_only: bool = False,
) -> Tuple[str, Dict[str, Any]]:
    """Return the extra ``AND`` clauses and their bound parameters."""
    clauses = []
    params: Dict[str, Any] = {}

    if product:
        clauses.append(
            "AND (p.name ILIKE :product OR p.accented_name ILIKE :product OR m.name ILIKE :product)"
        )
        params["product"] = f"%{product}%"

    if vaccines_only:
        clauses.append("AND p.atc_code LIKE 'J07%'")

    if atc_class:
        clauses.append("AND ca.code = :atc_class")
        params["atc_class"] = atc_class

    if molecule:
        if "," in molecule:
            clauses.append("AND m.id = ANY(:molecule_ids)")
            params["molecule_ids"] = parse_molecule_ids(molecule)
        else:
            clauses.append("AND m.id = :molecule_id")
            params["molecule_id"] = int(molecule.strip())

    return "\n    ".join(clauses), params


def attach_cis_names(incidents: List[Dict[str, Any]], uow: AbstractUnitOfWork) -> None:
    """Add a ``cis_names`` map (code -> denomination, '' when unknown) to each incident."""
    all_codes = sorted({code for incident in incidents for code in (incident.get("cis_codes") or [])})
    names: Dict[str, str] = {}
    if all_codes:
        result = uow.query(queries.GET_CIS_NAMES, codes=all_codes)
        names = {row["code_cis"]: row["denomination_medicament"] for row in result.rows}

    for incident in incidents:
        incident["cis_names"] = {
            code: names.get(code) or "" for code in (incident.get("cis_codes") or [])
        }


def get_incidents(
    uow: AbstractUnitOfWork,
    months_to_show: int,
    product: Optional[str] = None,
    atc_class: Optional[str] = None,
    molecule: Optional[str] = None,
    vaccines_only: bool = False,
    cache: Optional[QueryCache] = None,
) -> List[Dict[str, Any]]:
    """
    Incidents whose calculated end falls within ``months_to_show`` months
    of the latest report date, narrowed by the optional filters.

    Results are cached per filter tuple when a cache is given.
    """
    cache_key = (months_to_show, product or None, atc_class or None, molecule or None, vaccines_only)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.info(f"Serving incidents from cache for {cache_key}")
            return cached

    filters, params = build_incident_filters(product, atc_class, molecule, vaccines_only)
    sql = queries.GET_INCIDENTS.replace("/* ADDITIONAL_FILTERS */", filters)

    with uow:
        result = uow.query(sql, months_to_show=months_to_show, **params)
        incidents = _serialize(result.rows)
        attach_cis_names(incidents, uow)

    logger.info(f"Fetched {len(incidents)} incidents for {cache_key}")
    if cache is not None:
        cache.set(cache_key, incidents)
    return incidents


def get_incidents_by_product_id(uow: AbstractUnitOfWork, product_id: int) -> List[Dict[str, Any]]:
    with uow:
        result = uow.query(queries.GET_INCIDENTS_BY_PRODUCT_ID, product_id=product_id)
        incidents = _serialize(result.rows)
        attach_cis_names(incidents, uow)
    return incidents


def get_product_by_name(uow: AbstractUnitOfWork, product_name: str) -> Optional[Dict[str, Any]]:
    """Product row with its ``incidents`` list, or None when the name is unknown."""
    with uow:
        result = uow.query(queries.GET_PRODUCT_BY_NAME, name=product_name.lower())
        if not result.rows:
            return None
        product = _serialize(result.rows)[0]
        incidents = uow.query(queries.GET_INCIDENTS_BY_PRODUCT, product_id=product["id"])
        product["incidents"] = _serialize(incidents.rows)
    return product


def search_products(
    uow: AbstractUnitOfWork,
    search_term: Optional[str],
    months_to_show: int = 12,
) -> List[Dict[str, Any]]:
    """Products or molecules matching ``search_term`` across the whole history."""
    if not search_term or len(search_term) < SEARCH_MIN_LENGTH:
        return []
    with uow:
        result = uow.query(
            queries.SEARCH_PRODUCTS,
            pattern=f"%{search_term}%",
            months_to_show=months_to_show,
            limit=SEARCH_LIMIT,
        )
        return _serialize(result.rows)


def get_substitutions(uow: AbstractUnitOfWork, code_cis: str) -> List[Dict[str, Any]]:
    with uow:
        result = uow.query(queries.GET_SUBSTITUTIONS, code_cis=code_cis)
        return _serialize(result.rows)


def get_denomination(uow: AbstractUnitOfWork, code_cis: str) -> str:
    """Display name of a CIS code, falling back to the code itself."""
    with uow:
        result = uow.query(queries.GET_DENOMINATION_BY_CIS, code_cis=code_cis)
    if result.rows and result.rows[0].get("denomination_medicament"):
        return result.rows[0]["denomination_medicament"]
    return code_cis


def split_cis_codes(cis_codes: str) -> List[str]:
    return [code.strip() for code in cis_codes.split(",") if code.strip()]


def get_ema_incidents(uow: AbstractUnitOfWork, codes: List[str]) -> List[Dict[str, Any]]:
    with uow:
        result = uow.query(queries.GET_EMA_INCIDENTS_BY_CIS, codes=codes)
        return _serialize(result.rows)


def get_sales_by_cis(uow: AbstractUnitOfWork, codes: List[str]) -> List[Dict[str, Any]]:
    with uow:
        result = uow.query(queries.GET_SALES_BY_CIS, codes=codes)
        return _serialize(result.rows)


def get_atc_classes(uow: AbstractUnitOfWork, months_to_show: int = 12) -> List[Dict[str, Any]]:
    with uow:
        result = uow.query(queries.GET_ATC_CLASSES, months_to_show=months_to_show)
        return _serialize(result.rows)


def get_max_report_date(uow: AbstractUnitOfWork) -> Optional[str]:
    """Latest calculated end date across all incidents (the global report date)."""
    with uow:
        result = uow.query(queries.GET_MAX_REPORT_DATE)
    if not result.rows:
        return None
    return _jsonable(result.rows[0].get("max_report_date"))
