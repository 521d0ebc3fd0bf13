import asyncio
from datetime import datetime, timezone

import pytest

from conftest import FakeZillow
from tax_appeal.core.cache import LookupCache
from tax_appeal.data.zillow_client import MockZillow, ZillowApiError, ZillowMissingCredentialsError
from tax_appeal.services.assessment_ratios import AssessmentRatioStore, StaticRatioSource
from tax_appeal.services.valuation_service import ValuationService


def make_service(client, ratios=None):
    return ValuationService(
        client=client,
        cache=LookupCache(),
        ratios=ratios or AssessmentRatioStore(StaticRatioSource({})),
    )


def lookup(service, address, **kwargs):
    return asyncio.run(service.lookup(address, **kwargs))


def test_lookup_uses_search_then_detail(fake_zillow):
    valuation = lookup(make_service(fake_zillow), "123 Main St, Columbus, OH 43215")

    assert fake_zillow.calls == [
        ("search", "123 Main St Columbus, OH 43215"),
        ("detail", "123456"),
    ]
    assert valuation.provider == "zillow"
    assert valuation.zpid == "123456"
    assert valuation.amount == 405123
    assert valuation.currency == "USD"
    assert valuation.confidence == "high"
    assert valuation.valuation_date == datetime(2025, 5, 10, tzinfo=timezone.utc)
    assert valuation.search_hit["address"] == "123 Main St, Columbus, OH 43215"
    assert valuation.property_detail["countyFIPS"] == "39049"

    analytics = valuation.analytics
    assert analytics.county_fips == "39049"
    assert len(analytics.tax_history) == 2
    assert analytics.tax_history[0].year == 2024
    assert analytics.average_effective_tax_rate == pytest.approx(0.025, abs=1e-6)
    assert analytics.projected_tax_at_market == 10128
    assert analytics.projected_savings_vs_latest == -128
    assert analytics.property_facts.living_area == 2100
    assert analytics.valuation_range.high_estimate == 465891


def test_second_lookup_returns_cached_instance():
    client = FakeZillow(
        search={"props": [{"zpid": "999", "address": "10 Sample Rd, Austin, TX 73301", "zestimate": 512340}]},
        detail={"zpid": "999", "zestimate": 512340, "currency": "USD"},
    )
    service = make_service(client)

    first = lookup(service, "10 Sample Rd, Austin, TX 73301", use_cache=True)
    second = lookup(service, "10 Sample Rd, Austin, TX 73301", use_cache=True)

    assert first.amount == 512340
    assert first.analytics is not None
    assert second is first
    assert len(client.calls) == 2


def test_cache_key_ignores_case_and_layout():
    client = FakeZillow(search={"props": [{"zpid": "1", "price": 1}]}, detail={"zpid": "1"})
    service = make_service(client)

    first = lookup(service, "10 Sample Rd, Austin, TX 73301")
    second = lookup(service, "10 SAMPLE RD\nAustin, Texas 73301")

    assert second is first
    assert len(client.calls) == 2


def test_use_cache_false_always_fetches(fake_zillow):
    service = make_service(fake_zillow)

    first = lookup(service, "123 Main St, Columbus, OH 43215")
    second = lookup(service, "123 Main St, Columbus, OH 43215", use_cache=False)

    assert len(fake_zillow.calls) == 4
    assert second is not first
    assert second.amount == first.amount
    # the fresh result replaces the cached one
    assert lookup(service, "123 Main St, Columbus, OH 43215") is second


def test_unparseable_address_searches_raw_text_and_is_not_cached():
    client = FakeZillow(search={})
    service = make_service(client)

    assert lookup(service, "Unknown") is None
    assert client.calls == [("search", "Unknown")]
    assert len(service.cache) == 0


def test_unparseable_address_result_is_not_cached():
    client = FakeZillow(search={"props": [{"zpid": "5"}]}, detail={"zpid": "5", "price": 100})
    service = make_service(client)

    first = lookup(service, "  Lot 7 \n  Rural   Route ")
    second = lookup(service, "Lot 7 Rural Route")

    assert client.calls[0] == ("search", "Lot 7 Rural Route")
    assert first.amount == 100
    assert second is not first
    assert len(client.calls) == 4
    assert len(service.cache) == 0


def test_blank_address_makes_no_calls():
    client = FakeZillow()
    assert lookup(make_service(client), "   ") is None
    assert client.calls == []


def test_no_search_result_returns_none(fake_zillow):
    fake_zillow.search_payload = {"props": [], "totalResultCount": 0}
    service = make_service(fake_zillow)

    assert lookup(service, "123 Main St, Columbus, OH 43215") is None
    assert fake_zillow.calls == [("search", "123 Main St Columbus, OH 43215")]
    assert len(service.cache) == 0


def test_detail_without_tax_history():
    client = FakeZillow(
        search={"props": [{"zpid": "777", "address": "200 Test Ave, Chicago, IL 60601", "price": "600,000"}]},
        detail={"zpid": "777", "price": "600,000", "currency": "USD"},
    )
    valuation = lookup(make_service(client), "200 Test Ave, Chicago, IL 60601")

    assert valuation.zpid == "777"
    assert valuation.amount == 600000
    assert valuation.analytics.tax_history == ()
    assert valuation.analytics.average_effective_tax_rate is None


def test_direct_object_search_response():
    client = FakeZillow(
        search={"zpid": 33998887, "address": "1290 London Dr, Columbus, OH 43221", "zestimate": 650000},
        detail={"zpid": "33998887", "zestimate": 652000, "currency": "USD"},
    )
    valuation = lookup(make_service(client), "1290 London Dr, Columbus, OH 43221")

    assert client.calls == [
        ("search", "1290 London Dr Columbus, OH 43221"),
        ("detail", "33998887"),
    ]
    assert valuation.zpid == "33998887"
    assert valuation.amount == 652000
    assert valuation.analytics is not None


def test_hit_without_zpid_skips_detail():
    client = FakeZillow(search={"props": [{"address": "9 Elm Rd", "price": "512,340", "currency": "cad"}]})
    valuation = lookup(make_service(client), "9 Elm Rd, Dayton, OH 45402")

    assert client.calls == [("search", "9 Elm Rd Dayton, OH 45402")]
    assert valuation.zpid is None
    assert valuation.amount == 512340
    assert valuation.currency == "CAD"
    assert valuation.analytics is None


def test_missing_credentials_on_detail_degrades_to_no_detail(fake_zillow):
    fake_zillow.detail_error = ZillowMissingCredentialsError()
    valuation = lookup(make_service(fake_zillow), "123 Main St, Columbus, OH 43215")

    assert valuation.amount == 410000
    assert valuation.property_detail is None
    assert valuation.analytics is None


def test_other_detail_errors_propagate(fake_zillow):
    fake_zillow.detail_error = ZillowApiError("Zillow API request failed with status 500", 500)
    service = make_service(fake_zillow)

    with pytest.raises(ZillowApiError):
        lookup(service, "123 Main St, Columbus, OH 43215")
    assert len(service.cache) == 0


def test_search_errors_propagate(fake_zillow):
    fake_zillow.search_error = ZillowMissingCredentialsError()
    with pytest.raises(ZillowMissingCredentialsError):
        lookup(make_service(fake_zillow), "123 Main St, Columbus, OH 43215")


def test_assessment_ratio_applied_by_county(fake_zillow):
    ratios = AssessmentRatioStore(StaticRatioSource({"39049": 0.35}))
    valuation = lookup(make_service(fake_zillow, ratios), "123 Main St, Columbus, OH 43215")

    assert valuation.analytics.assessment_ratio_used == 0.35
    assert valuation.analytics.latest.millage_rate == pytest.approx(10000 / 140000 * 1000)


def test_lookup_with_status_reports_cache_hits(fake_zillow):
    service = make_service(fake_zillow)
    first = asyncio.run(service.lookup_with_status("123 Main St, Columbus, OH 43215"))
    assert first.cached is False
    assert first.components.city_state_zip == "Columbus, OH 43215"
    second = asyncio.run(service.lookup_with_status("123 Main St, Columbus, OH 43215"))
    assert second.cached is True
    assert second.valuation is first.valuation
    assert second.components == first.components


def test_evict_and_clear(fake_zillow):
    service = make_service(fake_zillow)
    lookup(service, "123 Main St, Columbus, OH 43215")

    assert service.evict("Unknown") is False
    assert service.evict("123 main st, columbus, oh 43215") is True
    assert service.evict("123 Main St, Columbus, OH 43215") is False

    lookup(service, "123 Main St, Columbus, OH 43215")
    assert service.clear_cache() == 1
    assert len(service.cache) == 0


def test_valuation_is_immutable(fake_zillow):
    valuation = lookup(make_service(fake_zillow), "123 Main St, Columbus, OH 43215")
    with pytest.raises(AttributeError):
        valuation.amount = 1


def test_end_to_end_with_mock_provider():
    valuation = lookup(make_service(MockZillow()), "10 Sample Rd, Austin, TX 73301")

    assert valuation.zpid is not None
    assert valuation.amount > 0
    assert len(valuation.analytics.tax_history) == 6
    assert valuation.analytics.average_effective_tax_rate is not None
    assert valuation.analytics.projected_savings_vs_latest is not None
    assert valuation.analytics.latest_sale.source == "Public Record"
