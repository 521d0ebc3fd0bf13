from typing import Any, Protocol, Optional
from dataclasses import dataclass, field
from datetime import datetime

# ----- Data shapes (thin & explicit) -----

@dataclass(frozen=True)
class AddressComponents:
    address_line: str           # e.g., "123 Main St"
    city_state_zip: str         # e.g., "Columbus, OH 43215"

    @property
    def cache_key(self) -> str:
        return f"{self.address_line.lower()}|{self.city_state_zip.lower()}"

    @property
    def location_query(self) -> str:
        return f"{self.address_line} {self.city_state_zip}"

@dataclass(frozen=True)
class TaxHistoryEntry:
    year: int
    assessed_value: Optional[float] = None
    tax_paid: Optional[float] = None
    tax_increase_rate: Optional[float] = None
    value_increase_rate: Optional[float] = None
    effective_tax_rate: Optional[float] = None
    millage_rate: Optional[float] = None      # only when an assessment ratio is known

@dataclass(frozen=True)
class LatestTax:
    year: int
    assessed_value: Optional[float]
    tax_paid: Optional[float]
    effective_tax_rate: Optional[float]
    millage_rate: Optional[float]
    tax_change_amount: Optional[int]          # vs. the prior entry
    effective_rate_delta: Optional[float]

@dataclass(frozen=True)
class ValuationRange:
    high_estimate: Optional[int] = None
    high_percent: Optional[float] = None
    low_estimate: Optional[int] = None
    low_percent: Optional[float] = None

@dataclass(frozen=True)
class PropertyFacts:
    living_area: Optional[float] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    price_per_square_foot: Optional[float] = None

@dataclass(frozen=True)
class LatestSale:
    price: Optional[float]
    date: Optional[str]                       # ISO-8601, UTC
    source: Optional[str]

@dataclass(frozen=True)
class ValuationAnalytics:
    county_fips: Optional[str]
    valuation_range: ValuationRange
    tax_history: tuple[TaxHistoryEntry, ...]
    latest: Optional[LatestTax]
    average_effective_tax_rate: Optional[float]
    projected_tax_at_market: Optional[int]
    projected_savings_vs_latest: Optional[int]
    property_facts: PropertyFacts
    latest_sale: Optional[LatestSale]
    assessment_ratio_used: Optional[float] = None
    average_millage_rate: Optional[float] = None

@dataclass(frozen=True)
class Valuation:
    zpid: Optional[str]
    amount: Optional[int]
    currency: str
    confidence: Optional[str]
    valuation_date: Optional[datetime]
    search_hit: Optional[dict[str, Any]]
    property_detail: Optional[dict[str, Any]]
    analytics: Optional[ValuationAnalytics]
    provider: str = field(default="zillow")

@dataclass(frozen=True)
class LookupResult:
    components: Optional[AddressComponents]   # None when the address did not parse
    valuation: Optional[Valuation]
    cached: bool = False

# ----- Protocols (interfaces) -----

class PropertyDataClient(Protocol):
    async def search(self, location: str) -> Any: ...
    async def property_detail(self, zpid: str) -> Any: ...
