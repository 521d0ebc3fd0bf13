import os
import socket
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

# Prefer repo sources over any installed package.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tax_appeal.core.config import settings  # noqa: E402


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0] if isinstance(address, tuple) else address
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", None)
    monkeypatch.setattr(settings, "DEFAULT_CURRENCY", "USD")
    monkeypatch.setattr(settings, "RATE_LIMIT_RPM", 1000)


class FakeZillow:
    """Scripted data client; records every call it receives."""

    def __init__(self, search=None, detail=None, detail_error=None, search_error=None):
        self.search_payload = search
        self.detail_payload = detail
        self.detail_error = detail_error
        self.search_error = search_error
        self.calls = []

    async def search(self, location):
        self.calls.append(("search", location))
        if self.search_error:
            raise self.search_error
        return self.search_payload

    async def property_detail(self, zpid):
        self.calls.append(("detail", zpid))
        if self.detail_error:
            raise self.detail_error
        return self.detail_payload


JAN_2024_MS = 1704067200000
JAN_2023_MS = 1672531200000


@pytest.fixture()
def columbus_search():
    return {
        "props": [
            {"zpid": "123456", "address": "123 Main St, Columbus, OH 43215", "price": 410000},
        ]
    }


@pytest.fixture()
def columbus_detail():
    return {
        "zpid": "123456",
        "price": 405123,
        "currency": "usd",
        "details": {"valuationDate": "2025-05-10T00:00:00Z", "confidence": "high"},
        "taxHistory": [
            {"time": JAN_2024_MS, "value": 400000, "taxPaid": 10000,
             "taxIncreaseRate": 0.05, "valueIncreaseRate": 0.03},
            {"time": JAN_2023_MS, "value": 380000, "taxPaid": 9500,
             "taxIncreaseRate": 0.02, "valueIncreaseRate": 0.01},
        ],
        "countyFIPS": "39049",
        "livingArea": 2100,
        "bedrooms": 4,
        "bathroomsFloat": 2.5,
        "pricePerSquareFoot": 200,
        "zestimateHighPercent": "15",
    }


@pytest.fixture()
def fake_zillow(columbus_search, columbus_detail):
    return FakeZillow(search=columbus_search, detail=columbus_detail)
