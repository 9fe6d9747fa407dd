"""
Wix REST API Client

Used by the bulk sync jobs to pull full datasets from Wix:
- Authentication via Bearer access token
- Query endpoints are POSTs with a JSON body
- Cursor paging: follow pagingMetadata.cursors.next until it disappears

No retries here. A failed page aborts the whole fetch and the sync is
restarted from scratch.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

PAGE_LIMIT = 100

BOOKINGS_QUERY = "/bookings/v1/bookings/query"
CONTACTS_QUERY = "/contacts/v1/contacts/query"
ORDERS_QUERY = "/stores/v1/orders/query"
PRODUCTS_QUERY = "/stores/v1/products/query"


@dataclass
class WixError:
    """Structured error from the Wix API"""
    code: str
    message: str
    status_code: int


ERROR_MAP = {
    400: WixError("bad_request", "Invalid query", 400),
    401: WixError("unauthorized", "Invalid or expired access token", 401),
    403: WixError("forbidden", "Missing permission for this API", 403),
    404: WixError("not_found", "Endpoint not found", 404),
    429: WixError("rate_limited", "Too many requests", 429),
}


class WixAPIError(Exception):
    def __init__(self, status_code: int, message: str, code: str = "unknown"):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"Wix API request failed: {status_code} {message}")


class WixClient:
    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        request_id: Optional[str] = None,
    ):
        self.access_token = access_token
        self.base_url = (base_url or settings.wix_api_base_url).rstrip("/")
        self.timeout = timeout or settings.wix_timeout_seconds
        self.transport = transport
        self.request_id = request_id or "sync"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _map_error(self, status_code: int, response_data: Optional[Dict]) -> WixError:
        error = ERROR_MAP.get(status_code)
        message = None
        if isinstance(response_data, dict):
            message = response_data.get("message")
        if error:
            return WixError(error.code, message or error.message, status_code)
        if status_code >= 500:
            return WixError("server_error", message or f"Server error: {status_code}", status_code)
        return WixError("unknown", message or f"Unknown error: {status_code}", status_code)

    def query(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a query body to endpoint and return the decoded response.

        Raises:
            WixAPIError: non-2xx response or transport failure
        """
        url = f"{self.base_url}{endpoint}"
        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, headers=self._get_headers(), json=body)
        except httpx.HTTPError as e:
            logger.error(f"[{self.request_id}] POST {endpoint} failed: {e}")
            raise WixAPIError(0, str(e), "transport_error") from e

        duration_ms = int((time.time() - start_time) * 1000)
        try:
            data = response.json()
        except ValueError:
            data = None

        if not 200 <= response.status_code < 300:
            error = self._map_error(response.status_code, data)
            logger.error(
                f"[{self.request_id}] POST {endpoint} -> {response.status_code} "
                f"({error.code}) in {duration_ms}ms"
            )
            raise WixAPIError(response.status_code, error.message, error.code)

        logger.debug(f"[{self.request_id}] POST {endpoint} -> {response.status_code} in {duration_ms}ms")
        return data or {}

    def fetch_all(
        self,
        endpoint: str,
        items_key: str,
        filter: Optional[Dict[str, Any]] = None,
        limit: int = PAGE_LIMIT,
    ) -> List[Dict[str, Any]]:
        """Follow cursor paging until Wix stops returning a next cursor"""
        items: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            paging: Dict[str, Any] = {"limit": limit}
            if cursor:
                paging["cursor"] = cursor
            body: Dict[str, Any] = {"cursorPaging": paging}
            if filter:
                body["filter"] = filter

            data = self.query(endpoint, body)
            items.extend(data.get(items_key) or [])
            pages += 1

            cursor = ((data.get("pagingMetadata") or {}).get("cursors") or {}).get("next")
            if not cursor:
                break

        logger.info(f"[{self.request_id}] Fetched {len(items)} {items_key} in {pages} page(s)")
        return items

    def fetch_all_bookings(self, start_date: Optional[str] = None) -> List[Dict[str, Any]]:
        start_date = start_date or settings.sync_start_date
        return self.fetch_all(BOOKINGS_QUERY, "bookings", {"startDate": {"$gte": start_date}})

    def fetch_all_contacts(self) -> List[Dict[str, Any]]:
        return self.fetch_all(CONTACTS_QUERY, "contacts")

    def fetch_all_orders(self, start_date: Optional[str] = None) -> List[Dict[str, Any]]:
        start_date = start_date or settings.sync_start_date
        return self.fetch_all(ORDERS_QUERY, "orders", {"createdDate": {"$gte": start_date}})

    def fetch_all_products(self) -> List[Dict[str, Any]]:
        return self.fetch_all(PRODUCTS_QUERY, "products")
