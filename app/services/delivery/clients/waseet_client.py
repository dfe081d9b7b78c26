"""
Merchant API client for Al-Waseet and MODON.

Both couriers expose the same merchant API shape. Only the read-only lookups
used by the synchronizations are implemented here.

Every response is an envelope ``{"status": bool, "errNum": str, "msg": str,
"data": ...}``; a call succeeds only when ``errNum == "S000"`` and ``status``
is true.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from app.core.config import get_settings
from app.core.logging_config import log_api_call
from app.domain.models.order import DeliveryPartner
from app.utils.error_handler import DeliveryPartnerException

logger = logging.getLogger(__name__)

SUCCESS_CODE = "S000"

# Endpoints that take the token as a query parameter instead of the auth-token header
TOKEN_IN_QUERY_ENDPOINTS = frozenset(
    {
        "statuses",
        "merchant-orders",
        "get-orders-by-ids-bulk",
        "get_merchant_invoices",
        "get_merchant_invoice_orders",
    }
)


def chunk_unique_ids(ids: Iterable[Any], size: int) -> List[List[str]]:
    """Deduplicate ids keeping their order and split them into chunks of ``size``."""
    unique: List[str] = []
    seen = set()
    for raw in ids:
        value = str(raw).strip() if raw is not None else ""
        if value and value not in seen:
            seen.add(value)
            unique.append(value)
    return [unique[start : start + size] for start in range(0, len(unique), size)]


class WaseetClient:
    """
    Async client for a courier merchant API.

    Usage:
        async with WaseetClient("alwaseet", token) as client:
            cities = await client.get_cities()
    """

    def __init__(self, partner: str = DeliveryPartner.ALWASEET, token: Optional[str] = None):
        if partner not in (DeliveryPartner.ALWASEET, DeliveryPartner.MODON):
            raise ValueError(f"Unsupported delivery partner: {partner}")

        self.settings = get_settings()
        self.partner = partner
        self.base_url = self.settings.get_partner_api_url(partner)
        self.token = token or self.settings.get_partner_token(partner)
        self.bulk_size = self.settings.DELIVERY_BULK_SIZE

        self.session: Optional[aiohttp.ClientSession] = None
        self._last_request_time = 0.0
        self._min_request_interval = self.settings.DELIVERY_MIN_REQUEST_INTERVAL

    async def initialize(self):
        if self.session is not None:
            return
        if not self.token:
            raise DeliveryPartnerException(
                f"No token configured for {self.partner}", partner=self.partner, endpoint="initialize"
            )

        timeout = ClientTimeout(total=self.settings.DELIVERY_REQUEST_TIMEOUT, connect=10)
        self.session = aiohttp.ClientSession(
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "User-Agent": f"{self.settings.APP_NAME}/{self.settings.APP_VERSION}",
            },
        )
        logger.info(f"🚚 {self.partner} client initialized ({self.base_url})")

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug(f"{self.partner} client closed")

    async def __aenter__(self) -> "WaseetClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _check_rate_limit(self):
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_request_interval:
            await asyncio.sleep(self._min_request_interval - elapsed)

    def _unwrap(self, endpoint: str, http_status: int, body: Any) -> Any:
        """Return ``data`` from a successful envelope or raise DeliveryPartnerException."""
        if not isinstance(body, dict):
            raise DeliveryPartnerException(
                f"Unexpected response from {self.partner}/{endpoint}",
                partner=self.partner,
                endpoint=endpoint,
                http_status=http_status,
            )

        if body.get("errNum") != SUCCESS_CODE or not body.get("status"):
            raise DeliveryPartnerException(
                body.get("msg") or f"{self.partner} API error on {endpoint}",
                partner=self.partner,
                endpoint=endpoint,
                api_error_code=body.get("errNum"),
                http_status=http_status,
            )

        return body.get("data")

    async def _request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, Any]] = None,
        max_retries: int = 3,
    ) -> Any:
        """
        Call an endpoint with rate limiting and retries on network errors.

        Raises:
            DeliveryPartnerException: On API errors or when retries are exhausted
        """
        if self.session is None:
            await self.initialize()

        url = f"{self.base_url}/{endpoint}"
        query = {key: value for key, value in (params or {}).items() if value is not None}
        headers = {}
        if endpoint in TOKEN_IN_QUERY_ENDPOINTS:
            query["token"] = self.token
        else:
            headers["auth-token"] = self.token

        last_exception: Optional[DeliveryPartnerException] = None

        for attempt in range(max_retries):
            await self._check_rate_limit()
            started = time.monotonic()
            try:
                data = None
                if form is not None:
                    data = aiohttp.FormData()
                    for key, value in form.items():
                        data.add_field(key, str(value))

                async with self.session.request(method, url, params=query, data=data, headers=headers) as response:
                    self._last_request_time = time.monotonic()
                    log_api_call(method, f"{self.partner}/{endpoint}", response.status, time.monotonic() - started)

                    if response.status == 429:
                        retry_after = int(response.headers.get("Retry-After", 2))
                        last_exception = DeliveryPartnerException(
                            f"{self.partner} rate limit exceeded",
                            partner=self.partner,
                            endpoint=endpoint,
                            http_status=429,
                            rate_limited=True,
                            retry_after=retry_after,
                        )
                        logger.warning(f"⏳ {self.partner} rate limit, waiting {retry_after}s (attempt {attempt + 1})")
                        await asyncio.sleep(retry_after)
                        continue

                    if response.status >= 500:
                        raise aiohttp.ClientResponseError(
                            response.request_info, response.history, status=response.status, message="server error"
                        )

                    body = await response.json(content_type=None)
                    return self._unwrap(endpoint, response.status, body)

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                status = getattr(e, "status", None)
                last_exception = DeliveryPartnerException(
                    f"Network error calling {self.partner}/{endpoint}: {e}",
                    partner=self.partner,
                    endpoint=endpoint,
                    http_status=status or 503,
                )
                if attempt < max_retries - 1:
                    wait_time = min(2**attempt, 10)
                    logger.warning(f"Network error on {endpoint}, retrying in {wait_time}s (attempt {attempt + 1})")
                    await asyncio.sleep(wait_time)

        raise last_exception or DeliveryPartnerException(
            f"{self.partner}/{endpoint} failed after retries", partner=self.partner, endpoint=endpoint
        )

    # Note: the endpoint really is "citys"
    async def get_cities(self) -> List[Dict[str, Any]]:
        return await self._request("citys") or []

    async def get_regions(self, city_id: Any) -> List[Dict[str, Any]]:
        return await self._request("regions", params={"city_id": int(city_id)}) or []

    async def get_package_sizes(self) -> List[Dict[str, Any]]:
        return await self._request("package-sizes") or []

    async def get_statuses(self) -> List[Dict[str, Any]]:
        return await self._request("statuses") or []

    async def get_merchant_orders(self) -> List[Dict[str, Any]]:
        return await self._request("merchant-orders") or []

    async def get_orders_by_ids(self, ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """
        Fetch orders by courier id, ``DELIVERY_BULK_SIZE`` (25) ids per request.

        Duplicates and empty ids are dropped before chunking.
        """
        orders: List[Dict[str, Any]] = []
        for chunk in chunk_unique_ids(ids, self.bulk_size):
            result = await self._request("get-orders-by-ids-bulk", method="POST", form={"ids": ",".join(chunk)})
            orders.extend(result or [])
        return orders

    async def get_merchant_invoices(self) -> List[Dict[str, Any]]:
        return await self._request("get_merchant_invoices") or []

    async def get_invoice_orders(self, invoice_id: Any) -> Dict[str, Any]:
        """
        Orders paid by one merchant invoice.

        Returns:
            dict: ``invoice`` (the invoice row, or None) and ``orders``
        """
        data = await self._request("get_merchant_invoice_orders", params={"invoice_id": invoice_id}) or {}
        invoices = data.get("invoice") or []
        return {"invoice": invoices[0] if invoices else None, "orders": data.get("orders") or []}

    def __repr__(self) -> str:
        return f"WaseetClient(partner={self.partner}, connected={self.session is not None})"
