from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field

class ValuationRequest(BaseModel):
    address: str = Field(min_length=4)
    use_cache: bool = True

class AddressRequest(BaseModel):
    address: str = Field(min_length=1)

class AddressComponentsOut(BaseModel):
    address_line: str
    city_state_zip: str

class AddressResponse(BaseModel):
    address: str
    components: AddressComponentsOut | None = None

class TaxHistoryEntryOut(BaseModel):
    year: int
    assessed_value: float | None = None
    tax_paid: float | None = None
    tax_increase_rate: float | None = None
    value_increase_rate: float | None = None
    effective_tax_rate: float | None = None
    millage_rate: float | None = None

class LatestTaxOut(BaseModel):
    year: int
    assessed_value: float | None = None
    tax_paid: float | None = None
    effective_tax_rate: float | None = None
    millage_rate: float | None = None
    tax_change_amount: int | None = None
    effective_rate_delta: float | None = None

class ValuationRangeOut(BaseModel):
    high_estimate: int | None = None
    high_percent: float | None = None
    low_estimate: int | None = None
    low_percent: float | None = None

class PropertyFactsOut(BaseModel):
    living_area: float | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    price_per_square_foot: float | None = None

class LatestSaleOut(BaseModel):
    price: float | None = None
    date: str | None = None
    source: str | None = None

class AnalyticsOut(BaseModel):
    county_fips: str | None = None
    valuation_range: ValuationRangeOut
    tax_history: list[TaxHistoryEntryOut]
    latest: LatestTaxOut | None = None
    average_effective_tax_rate: float | None = None
    projected_tax_at_market: int | None = None
    projected_savings_vs_latest: int | None = None
    property_facts: PropertyFactsOut
    latest_sale: LatestSaleOut | None = None
    assessment_ratio_used: float | None = None
    average_millage_rate: float | None = None

class ValuationOut(BaseModel):
    provider: str = "zillow"
    zpid: str | None = None
    amount: int | None = None
    currency: str = "USD"
    confidence: str | None = None
    valuation_date: datetime | None = None
    analytics: AnalyticsOut | None = None
    search_hit: dict[str, Any] | None = None
    property_detail: dict[str, Any] | None = None

class ValuationResponse(BaseModel):
    address: str
    components: AddressComponentsOut | None = None
    valuation: ValuationOut | None = None
    cached: bool = False
    etag: str | None = None

class CacheClearResponse(BaseModel):
    cleared: int | None = None
    evicted: bool | None = None
