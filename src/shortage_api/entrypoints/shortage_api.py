"""
Dispomed shortage API - read endpoints for incidents, products and substitutions.
Thin API layer: every endpoint delegates to views.py.
"""

from datetime import datetime, timezone
from typing import Optional
import logging

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config
from shortage_api import views
from shortage_api.domain.errors import (
    DATABASE_SETUP_ERROR,
    DATABASE_SETUP_MESSAGE,
    NotFound,
    ShortageAPIError,
    ValidationError,
    is_database_missing,
)
from shortage_api.service_layer.query_cache import QueryCache
from shortage_api.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=300"

app = FastAPI(
    title="Dispomed Shortage API",
    description="Read API for drug shortage incidents, products and therapeutic substitutions",
    version="1.0.0"
)

incidents_cache = QueryCache()

# ---------- Response models ----------

class ConfigResponse(BaseModel):
    API_BASE_URL: str

class DenominationResponse(BaseModel):
    code_cis: str
    denomination: str

class ReportDateResponse(BaseModel):
    max_report_date: Optional[str] = None



def get_uow() -> AbstractUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_incidents_cache() -> QueryCache:
    return incidents_cache


@app.exception_handler(ShortageAPIError)
async def shortage_api_error_handler(request: Request, exc: ShortageAPIError):
    return JSONResponse(status_code=exc.status_code, content=exc.as_json())


def _failure_response(error: Exception, generic_error: str) -> JSONResponse:
    """500 response; a missing database gets setup instructions instead of a generic error."""
    if is_database_missing(error):
        return JSONResponse(
            status_code=500,
            content={"error": DATABASE_SETUP_ERROR, "message": DATABASE_SETUP_MESSAGE},
        )
    return JSONResponse(status_code=500, content={"error": generic_error})


def _require_cis_codes(cis_codes: Optional[str]):
    codes = views.split_cis_codes(cis_codes or "")
    if not codes:
        raise ValidationError("cis_codes query param required")
    return codes


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "dispomed-shortage-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/api/config", response_model=ConfigResponse)
def get_config():
    """Expose the public API base URL to browser clients."""
    return ConfigResponse(API_BASE_URL=config.get_api_url())


@app.get("/api/incidents")
def get_incidents(
    months_to_show: int = Query(12, alias="monthsToShow", gt=0),
    product: Optional[str] = None,
    atc_class: Optional[str] = Query(None, alias="atcClass"),
    molecule: Optional[str] = None,
    vaccines_only: bool = Query(False, alias="vaccinesOnly"),
    uow: AbstractUnitOfWork = Depends(get_uow),
    cache: QueryCache = Depends(get_incidents_cache),
):
    """
    Incidents within the last ``monthsToShow`` months of the report date.

    Args:
        product: substring matched on product and molecule names
        atcClass: ATC class letter
        molecule: molecule id, or comma-separated ids
        vaccinesOnly: restrict to ATC J07
    """
    logger.info(
        f"Fetching incidents months={months_to_show} product={product} "
        f"atc_class={atc_class} molecule={molecule} vaccines_only={vaccines_only}"
    )
    try:
        incidents = views.get_incidents(
            uow,
            months_to_show=months_to_show,
            product=product,
            atc_class=atc_class,
            molecule=molecule,
            vaccines_only=vaccines_only,
            cache=cache,
        )
        return JSONResponse(content=incidents, headers={"Cache-Control": CACHE_CONTROL})
    except ValueError as e:
        logger.error(f"Invalid incident filter: {e}")
        raise ValidationError("Invalid molecule id", str(e)) from e
    except Exception as e:
        logger.error(f"Error fetching incidents: {e}")
        return _failure_response(e, "Internal server error")


@app.get("/api/incidents/product/{product_id}")
def get_product_incidents(product_id: int, uow: AbstractUnitOfWork = Depends(get_uow)):
    """All incidents of one product, with CIS names attached."""
    logger.info(f"Fetching incidents for product {product_id}")
    try:
        return views.get_incidents_by_product_id(uow, product_id)
    except Exception as e:
        logger.error(f"Error fetching product incidents for {product_id}: {e}")
        return _failure_response(e, "Failed to fetch incidents")


@app.get("/api/product/{product_name}")
def get_product(product_name: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Product detail by (case-insensitive) name, including its incidents."""
    logger.info(f"Fetching product {product_name}")
    try:
        product = views.get_product_by_name(uow, product_name)
        if product is None:
            raise NotFound("Product not found")
        return product
    except ShortageAPIError:
        raise
    except Exception as e:
        logger.error(f"Error fetching product detail for {product_name}: {e}")
        return _failure_response(e, "Failed to fetch product")


@app.get("/api/search")
def search(
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    months_to_show: int = Query(12, alias="monthsToShow", gt=0),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """Search products and molecules over the full history; under 2 characters returns []."""
    try:
        return views.search_products(uow, search_term, months_to_show)
    except Exception as e:
        logger.error(f"Error in search for {search_term!r}: {e}")
        return _failure_response(e, "Search failed")


@app.get("/api/substitutions/{cis_code}")
def get_substitutions(cis_code: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Therapeutic equivalences where the CIS code is either origin or target."""
    logger.info(f"Fetching substitutions for CIS {cis_code}")
    try:
        return views.get_substitutions(uow, cis_code)
    except Exception as e:
        logger.error(f"Error fetching substitutions for CIS {cis_code}: {e}")
        return _failure_response(e, "Internal server error")


@app.get("/api/denomination/{cis_code}", response_model=DenominationResponse)
def get_denomination(cis_code: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Display name of a CIS code (the code itself when unknown)."""
    try:
        return DenominationResponse(
            code_cis=cis_code, denomination=views.get_denomination(uow, cis_code)
        )
    except Exception as e:
        logger.error(f"Error fetching denomination for CIS {cis_code}: {e}")
        return _failure_response(e, "Internal server error")


@app.get("/api/ema-incidents")
def get_ema_incidents(cis_codes: Optional[str] = None, uow: AbstractUnitOfWork = Depends(get_uow)):
    """European Medicines Agency shortage reports linked to any of the CIS codes."""
    codes = _require_cis_codes(cis_codes)
    try:
        return views.get_ema_incidents(uow, codes)
    except Exception as e:
        logger.error(f"Error fetching EMA incidents: {e}")
        return _failure_response(e, "Failed to fetch EMA incidents")


@app.get("/api/sales-by-cis")
def get_sales_by_cis(cis_codes: Optional[str] = None, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Yearly box sales per CIP13 for the given CIS codes."""
    codes = _require_cis_codes(cis_codes)
    try:
        return views.get_sales_by_cis(uow, codes)
    except Exception as e:
        logger.error(f"Error fetching sales data: {e}")
        return _failure_response(e, "Internal server error")


@app.get("/api/atc-classes")
def get_atc_classes(
    months_to_show: int = Query(12, alias="monthsToShow", gt=0),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    try:
        return views.get_atc_classes(uow, months_to_show)
    except Exception as e:
        logger.error(f"Error fetching ATC classes: {e}")
        return _failure_response(e, "Failed to fetch ATC classes")


@app.get("/api/report-date", response_model=ReportDateResponse)
def get_report_date(uow: AbstractUnitOfWork = Depends(get_uow)):
    try:
        return ReportDateResponse(max_report_date=views.get_max_report_date(uow))
    except Exception as e:
        logger.error(f"Error fetching report date: {e}")
        return _failure_response(e, "Internal server error")


def main():
    uvicorn.run(app, host="0.0.0.0", port=config.get_http_port())


if __name__ == "__main__":
    main()
