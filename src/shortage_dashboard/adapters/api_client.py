"""Shortage API client - adapter used by the dashboard to fetch incident data."""

import abc
import logging
from typing import Any, Dict, List, Optional
import requests

import config

logger = logging.getLogger(__name__)


class AbstractShortageClient(abc.ABC):
    """Abstract base class for shortage API client implementations."""

    @abc.abstractmethod
    def get_incidents(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Fetch incidents matching the filter query parameters.

        Raises:
            ShortageClientError: If the request fails
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_product_incidents(self, product_id: int) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_product(self, product_name: str) -> Dict[str, Any]:
        """
        Product looked up by name (case-insensitive), with its incidents.

        Raises:
            ShortageClientError: With status_code 404 when no product has that name
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_report_date(self) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_atc_classes(self, months_to_show: int) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_sales(self, cis_codes: List[str]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_ema_incidents(self, cis_codes: List[str]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abc.abstractmethod
    def search_suggestions(self, search_term: str, months_to_show: int = 12) -> List[Dict[str, Any]]:
        """Suggestions for the search box; any failure yields an empty list."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_substitutions(self, cis_code: str) -> List[Dict[str, Any]]:
        """Alternatives for a CIS code; any failure yields an empty list."""
        raise NotImplementedError


class HTTPShortageClient(AbstractShortageClient):
    """HTTP-based client for the Dispomed shortage API."""

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30, session=None):
        """
        Initialize shortage API client.

        Args:
            base_url: Base URL of the shortage API. If None, uses config.
            timeout: Request timeout in seconds
            session: requests session to reuse (a new one by default)
        """
        self.base_url = base_url or config.get_api_url()
        self.timeout = timeout
        self.session = session or requests.Session()

    def refresh_base_url(self) -> str:
        """Ask the API which base URL browser-side clients should use."""
        data = self._get("/api/config")
        self.base_url = data.get("API_BASE_URL") or self.base_url
        return self.base_url

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.info(f"GET {url} params={params}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 404:
                logger.error(f"Resource not found: {url}")
                raise ShortageClientError(f"Not found: {path}", status_code=404) from e
            else:
                logger.error(f"HTTP error fetching {url}: {e}")
                raise ShortageClientError(f"Failed to fetch {path}: {e}", status_code=status) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise ShortageClientError(f"Network error: {e}") from e

        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise ShortageClientError(f"Invalid response: {e}") from e

    def get_incidents(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        return self._get("/api/incidents", params=params)

    def get_product_incidents(self, product_id: int) -> List[Dict[str, Any]]:
        return self._get(f"/api/incidents/product/{product_id}")

    def get_product(self, product_name: str) -> Dict[str, Any]:
        return self._get(f"/api/product/{product_name}")

    def get_report_date(self) -> Optional[str]:
        return self._get("/api/report-date").get("max_report_date")

    def get_atc_classes(self, months_to_show: int) -> List[Dict[str, Any]]:
        return self._get("/api/atc-classes", params={"monthsToShow": months_to_show})

    def get_sales(self, cis_codes: List[str]) -> List[Dict[str, Any]]:
        return self._get("/api/sales-by-cis", params={"cis_codes": ",".join(cis_codes)})

    def get_ema_incidents(self, cis_codes: List[str]) -> List[Dict[str, Any]]:
        return self._get("/api/ema-incidents", params={"cis_codes": ",".join(cis_codes)})

    def search_suggestions(self, search_term: str, months_to_show: int = 12) -> List[Dict[str, Any]]:
        try:
            return self._get(
                "/api/search", params={"searchTerm": search_term, "monthsToShow": months_to_show}
            )
        except ShortageClientError as e:
            logger.error(f"Failed to fetch search suggestions: {e}")
            return []

    def get_substitutions(self, cis_code: str) -> List[Dict[str, Any]]:
        try:
            return self._get(f"/api/substitutions/{cis_code}")
        except ShortageClientError as e:
            logger.error(f"Failed to fetch substitutions for CIS {cis_code}: {e}")
            return []


class ShortageClientError(Exception):
    """Exception raised for errors in the shortage API client."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
