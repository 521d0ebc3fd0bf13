import logging
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx

from .base import PropertyDataClient
from ..core.config import settings
from ..core.metrics import ZILLOW_REQUESTS
from ..core.utils import fnv1a_32, seeded_rand

logger = logging.getLogger(__name__)

SEARCH_PATH = "/propertyExtendedSearch"
PROPERTY_PATH = "/property"

class ZillowApiError(Exception):
    """Non-2xx response, non-JSON body, or transport failure."""
    def __init__(self, message: str, status: int | None = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

class ZillowMissingCredentialsError(Exception):
    def __init__(self, message: str = "ZILLOW_API_KEY environment variable is not configured."):
        super().__init__(message)

def _query_params(params: Mapping[str, Any]) -> dict[str, str]:
    # None and empty values are dropped; booleans go out as "true"/"false"
    out = {}
    for key, value in params.items():
        if value is None:
            continue
        text = str(value).lower() if isinstance(value, bool) else str(value)
        if text:
            out[key] = text
    return out

class HttpZillow(PropertyDataClient):
    """
    Client for the RapidAPI Zillow proxy. A fresh AsyncClient per call, like
    the other HTTP adapters; `transport` lets tests swap the network out.
    """
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.ZILLOW_BASE_URL).rstrip("/")
        self.host = host or settings.ZILLOW_HOST
        self.timeout = timeout or settings.ZILLOW_TIMEOUT_SECONDS
        self.transport = transport

    async def request(self, path: str, params: Mapping[str, Any]) -> Any:
        api_key = self.api_key or settings.ZILLOW_API_KEY
        if not api_key:
            raise ZillowMissingCredentialsError()

        headers = {"X-RapidAPI-Key": api_key, "X-RapidAPI-Host": self.host}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(f"{self.base_url}{path}", params=_query_params(params), headers=headers)
        except httpx.HTTPError as exc:
            ZILLOW_REQUESTS.labels(endpoint=path, outcome="transport_error").inc()
            raise ZillowApiError(f"Zillow API request failed: {exc}") from exc

        try:
            body = r.json()
        except ValueError:
            body = None
            if r.is_success:
                ZILLOW_REQUESTS.labels(endpoint=path, outcome="invalid_json").inc()
                raise ZillowApiError("Zillow API returned a non-JSON response.", r.status_code, None)

        if not r.is_success:
            ZILLOW_REQUESTS.labels(endpoint=path, outcome="http_error").inc()
            message = body.get("message") if isinstance(body, dict) else None
            if not isinstance(message, str):
                message = f"Zillow API request failed with status {r.status_code}"
            raise ZillowApiError(message, r.status_code, body)

        ZILLOW_REQUESTS.labels(endpoint=path, outcome="ok").inc()
        return body

    async def search(self, location: str) -> Any:
        return await self.request(SEARCH_PATH, {"location": location})

    async def property_detail(self, zpid: str) -> Any:
        return await self.request(PROPERTY_PATH, {"zpid": zpid, "details": True})

class MockZillow(PropertyDataClient):
    """
    Offline stand-in returning vendor-shaped payloads. Everything is seeded
    from the query so the same address always yields the same property.
    """
    async def search(self, location: str) -> Any:
        seed = fnv1a_32(location.lower())
        zpid = str(10_000_000 + seed % 90_000_000)
        price = int(180_000 + seeded_rand(seed, 1)[0] * 720_000)
        return {
            "props": [{"zpid": zpid, "address": location, "price": price}],
            "totalResultCount": 1,
        }

    async def property_detail(self, zpid: str) -> Any:
        seed = fnv1a_32(zpid)
        r = seeded_rand(seed, 6)
        zestimate = int(180_000 + r[0] * 720_000)
        rate = 0.012 + r[1] * 0.018                     # 1.2% – 3.0% effective
        this_year = datetime.now(timezone.utc).year

        tax_history = []
        value = zestimate * (0.75 + r[2] * 0.3)
        for i in range(6):
            year = this_year - 1 - i
            tax_history.append({
                "time": int(datetime(year, 1, 1, tzinfo=timezone.utc).timestamp() * 1000),
                "value": int(value),
                "taxPaid": round(value * rate, 2),
                "valueIncreaseRate": 0.03,
                "taxIncreaseRate": 0.02,
            })
            value /= 1.03

        sold_year = this_year - 3 - int(r[3] * 8)
        living_area = int(900 + r[4] * 2600)
        return {
            "zpid": zpid,
            "zestimate": zestimate,
            "currency": "USD",
            "countyFIPS": f"{39000 + int(r[5] * 175) * 2 + 1}",
            "zestimateHighPercent": "6",
            "zestimateLowPercent": "5",
            "livingArea": living_area,
            "bedrooms": 2 + int(r[4] * 4),
            "bathroomsFloat": 1 + round(r[3] * 2) / 2,
            "pricePerSquareFoot": round(zestimate / living_area),
            "taxHistory": tax_history,
            "priceHistory": [
                {"event": "Listed for sale", "price": int(zestimate * 0.8), "date": f"{sold_year}-03-01", "source": "MLS"},
                {"event": "Sold", "price": int(zestimate * 0.78), "date": f"{sold_year}-05-15", "source": "Public Record"},
            ],
            "details": {"confidence": "medium"},
        }

def zillow_client() -> PropertyDataClient:
    """
    Factory picks mock or http based on env flags.
    """
    if settings.ZILLOW_PROVIDER == "mock":
        logger.info("using mock Zillow client")
        return MockZillow()
    return HttpZillow()
