"""
Derived tax-appeal figures from a raw Zillow property record.

The vendor payload is loosely typed and every field is optional, so each
helper here is independently null-safe: a missing or malformed field only
blanks the figures that depend on it. Nothing in this module raises on
payload shape.
"""
import math
from datetime import datetime
from typing import Any

from ..core.config import settings
from ..core.utils import (
    average,
    epoch_seconds,
    epoch_to_datetime,
    finite,
    iso_utc,
    parse_datetime,
    round_half_up,
    to_number,
)
from ..data.base import (
    LatestSale,
    LatestTax,
    PropertyFacts,
    TaxHistoryEntry,
    ValuationAnalytics,
    ValuationRange,
)

TAX_HISTORY_LIMIT = 10
AVERAGE_WINDOW = 5

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}

def _first_present(record: dict, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None

def _clean_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None

# ----- Top-level valuation fields -----

def derive_amount(search_hit: dict | None, detail: dict | None) -> int | None:
    """
    Best available estimate. A modelled estimate beats a list price, and the
    detail record beats the search hit.
    """
    detail = _as_dict(detail)
    hit = _as_dict(search_hit)
    candidates = (
        detail.get("zestimate"),
        detail.get("homeValue"),
        detail.get("price"),
        _as_dict(detail.get("details")).get("price"),
        hit.get("zestimate"),
        hit.get("homeValue"),
        hit.get("price"),
    )
    for candidate in candidates:
        number = to_number(candidate)
        if number is not None:
            return round_half_up(number)
    return None

def derive_currency(search_hit: dict | None, detail: dict | None) -> str:
    detail = _as_dict(detail)
    candidates = (
        detail.get("currency"),
        _as_dict(detail.get("details")).get("currency"),
        _as_dict(search_hit).get("currency"),
    )
    for candidate in candidates:
        text = _clean_str(candidate)
        if text:
            return text.upper()
    return settings.DEFAULT_CURRENCY

def derive_confidence(detail: dict | None) -> str | None:
    confidence = _as_dict(_as_dict(detail).get("details")).get("confidence")
    return confidence if isinstance(confidence, str) else None

def derive_valuation_date(detail: dict | None) -> datetime | None:
    return parse_datetime(_as_dict(_as_dict(detail).get("details")).get("valuationDate"))

# ----- Tax history -----

def _year_from_number(value: float) -> int | None:
    if abs(value) > 1e12:
        moment = epoch_to_datetime(value)
        return moment.year if moment else None
    if 1000 <= value <= 9999 and value == int(value):
        return int(value)
    if value >= 1e8:
        moment = epoch_to_datetime(value)
        return moment.year if moment else None
    return None

def to_year(value: Any) -> int | None:
    """
    Resolve a tax year from epoch millis, epoch seconds, a literal year or a
    date string. Unresolvable values give None rather than a sentinel year.
    """
    year = None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isfinite(value):
            year = _year_from_number(value)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            numeric = float(text)
        except ValueError:
            numeric = None
        if numeric is not None and math.isfinite(numeric):
            year = _year_from_number(numeric)
        else:
            moment = parse_datetime(text)
            year = moment.year if moment else None
    if year is None or not 1000 <= year <= 9999:
        return None
    return year

def parse_tax_history(detail: dict | None, assessment_ratio: float | None = None) -> list[TaxHistoryEntry]:
    raw = _as_dict(detail).get("taxHistory")
    if not isinstance(raw, list):
        return []

    entries = []
    for record in raw:
        if not isinstance(record, dict):
            continue
        year = to_year(_first_present(record, "time", "year"))
        if year is None:
            continue

        assessed = to_number(_first_present(record, "value", "assessedValue"))
        tax_paid = to_number(_first_present(record, "taxPaid", "taxAmount"))
        has_base = assessed is not None and assessed > 0 and tax_paid is not None
        effective = finite(tax_paid / assessed) if has_base else None
        millage = None
        taxable = assessed * assessment_ratio if has_base and assessment_ratio else 0
        if taxable > 0:
            millage = finite(tax_paid / taxable * 1000)

        entries.append(TaxHistoryEntry(
            year=year,
            assessed_value=assessed,
            tax_paid=tax_paid,
            tax_increase_rate=to_number(record.get("taxIncreaseRate")),
            value_increase_rate=to_number(record.get("valueIncreaseRate")),
            effective_tax_rate=effective,
            millage_rate=millage,
        ))

    # stable: repeated years keep source order
    entries.sort(key=lambda e: e.year, reverse=True)
    return entries[:TAX_HISTORY_LIMIT]

def _latest_tax(history: list[TaxHistoryEntry]) -> LatestTax | None:
    if not history:
        return None
    latest = history[0]
    prior = history[1] if len(history) > 1 else None

    tax_change = None
    rate_delta = None
    if prior is not None:
        if latest.tax_paid is not None and prior.tax_paid is not None:
            tax_change = round_half_up(latest.tax_paid - prior.tax_paid)
        if latest.effective_tax_rate is not None and prior.effective_tax_rate is not None:
            rate_delta = finite(latest.effective_tax_rate - prior.effective_tax_rate)

    return LatestTax(
        year=latest.year,
        assessed_value=latest.assessed_value,
        tax_paid=latest.tax_paid,
        effective_tax_rate=latest.effective_tax_rate,
        millage_rate=latest.millage_rate,
        tax_change_amount=tax_change,
        effective_rate_delta=rate_delta,
    )

# ----- Range, facts, sales -----

def derive_valuation_range(detail: dict | None, market_value: float | None) -> ValuationRange:
    detail = _as_dict(detail)
    high_percent = to_number(detail.get("zestimateHighPercent"))
    low_percent = to_number(detail.get("zestimateLowPercent"))

    high = low = None
    if market_value is not None:
        if high_percent is not None:
            high = round_half_up(market_value * (1 + high_percent / 100))
        if low_percent is not None:
            low = round_half_up(market_value * (1 - low_percent / 100))

    return ValuationRange(
        high_estimate=high,
        high_percent=high_percent,
        low_estimate=low,
        low_percent=low_percent,
    )

def derive_property_facts(detail: dict | None) -> PropertyFacts:
    detail = _as_dict(detail)
    return PropertyFacts(
        living_area=to_number(_first_present(detail, "livingAreaValue", "livingArea")),
        bedrooms=to_number(detail.get("bedrooms")),
        bathrooms=to_number(_first_present(detail, "bathroomsFloat", "bathrooms")),
        price_per_square_foot=to_number(detail.get("pricePerSquareFoot")),
    )

def derive_latest_sale(detail: dict | None) -> LatestSale | None:
    history = _as_dict(detail).get("priceHistory")
    if not isinstance(history, list):
        return None

    sales = []
    for record in history:
        if not isinstance(record, dict):
            continue
        event = _clean_str(record.get("event"))
        if not event or "sold" not in event.lower():
            continue
        timestamp = to_number(record.get("time"))
        from_time = epoch_to_datetime(timestamp) if timestamp is not None else None
        from_date = parse_datetime(record.get("date"))
        # numeric time first, then a parseable date, then undated entries last
        moment = from_time or from_date
        sort_key = epoch_seconds(moment) if moment else None
        sales.append((-math.inf if sort_key is None else sort_key, record, from_date or from_time))

    if not sales:
        return None

    sales.sort(key=lambda s: s[0], reverse=True)
    _, record, display_moment = sales[0]
    return LatestSale(
        price=to_number(record.get("price")),
        date=iso_utc(display_moment) if display_moment else None,
        source=_clean_str(record.get("source")),
    )

def county_fips(detail: dict | None) -> str | None:
    raw = _as_dict(detail).get("countyFIPS")
    if isinstance(raw, int) and not isinstance(raw, bool):
        return str(raw)
    return _clean_str(raw)

# ----- Aggregate -----

def derive_analytics(
    detail: dict | None,
    market_value: float | None,
    assessment_ratio: float | None = None,
) -> ValuationAnalytics | None:
    """
    Roll a property record up into appeal figures.

    Returns None only when there is no detail record at all (the detail
    call was skipped or failed). A record missing individual fields still
    yields analytics with those figures set to None.
    """
    if not isinstance(detail, dict):
        return None

    history = parse_tax_history(detail, assessment_ratio)
    latest = _latest_tax(history)
    recent = history[:AVERAGE_WINDOW]
    avg_rate = average(e.effective_tax_rate for e in recent)

    projected = None
    if market_value is not None and avg_rate is not None:
        projected = round_half_up(market_value * avg_rate)

    savings = None
    if latest is not None and latest.tax_paid is not None and projected is not None:
        savings = round_half_up(latest.tax_paid - projected)

    return ValuationAnalytics(
        county_fips=county_fips(detail),
        valuation_range=derive_valuation_range(detail, market_value),
        tax_history=tuple(history),
        latest=latest,
        average_effective_tax_rate=avg_rate,
        projected_tax_at_market=projected,
        projected_savings_vs_latest=savings,
        property_facts=derive_property_facts(detail),
        latest_sale=derive_latest_sale(detail),
        assessment_ratio_used=assessment_ratio,
        average_millage_rate=average(e.millage_rate for e in recent),
    )
