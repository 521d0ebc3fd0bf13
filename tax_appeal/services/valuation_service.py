import logging

from ..core.cache import LookupCache
from ..core.metrics import CACHE_LOOKUPS
from ..core.utils import collapse_whitespace
from ..data.base import AddressComponents, LookupResult, PropertyDataClient, Valuation
from ..data.zillow_client import ZillowMissingCredentialsError, zillow_client
from .address import extract_address_components
from .analytics import (
    county_fips,
    derive_amount,
    derive_analytics,
    derive_confidence,
    derive_currency,
    derive_valuation_date,
)
from .assessment_ratios import AssessmentRatioStore
from .search_hits import best_hit, hit_zpid

logger = logging.getLogger(__name__)

def cache_key_for(components: AddressComponents | None) -> str | None:
    return components.cache_key if components else None

class ValuationService:
    """
    Orchestrates:
      address → normalize → search → property detail → analytics
    Owns the lookup cache; results are immutable so cache hits hand back
    the same instance.
    """
    def __init__(
        self,
        client: PropertyDataClient | None = None,
        cache: LookupCache[Valuation] | None = None,
        ratios: AssessmentRatioStore | None = None,
    ):
        self.client = client or zillow_client()
        self.cache = cache if cache is not None else LookupCache()
        self.ratios = ratios or AssessmentRatioStore()

    async def lookup(self, address: str, use_cache: bool = True) -> Valuation | None:
        result = await self.lookup_with_status(address, use_cache=use_cache)
        return result.valuation

    async def lookup_with_status(self, address: str, use_cache: bool = True) -> LookupResult:
        """Like `lookup`, also returning the parsed address and whether the result came from cache."""
        components = extract_address_components(address)
        cache_key = cache_key_for(components)

        if cache_key and use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                CACHE_LOOKUPS.labels(result="hit").inc()
                logger.debug("valuation cache hit", extra={"cache_key": cache_key})
                return LookupResult(components, cached, cached=True)
            CACHE_LOOKUPS.labels(result="miss").inc()

        if components:
            location = components.location_query
        else:
            logger.info("address not parsed, searching raw text", extra={"address": address})
            location = collapse_whitespace(address or "")
        if not location:
            return LookupResult(components, None)

        search_response = await self.client.search(location)
        hit = best_hit(search_response)
        if hit is None:
            logger.info("no Zillow search result", extra={"location": location})
            return LookupResult(components, None)

        zpid = hit_zpid(hit)
        detail = None
        if zpid:
            try:
                detail = await self.client.property_detail(zpid)
            except ZillowMissingCredentialsError:
                logger.warning("Zillow credentials missing for detail call", extra={"zpid": zpid})
                detail = None

        valuation = self._compose(hit, zpid, detail)
        if cache_key:
            self.cache.set(cache_key, valuation)
        return LookupResult(components, valuation)

    def _compose(self, hit: dict, zpid: str | None, detail: object) -> Valuation:
        detail = detail if isinstance(detail, dict) else None
        amount = derive_amount(hit, detail)
        ratio = self.ratios.get_ratio(county_fips(detail)) if detail else None
        return Valuation(
            zpid=zpid,
            amount=amount,
            currency=derive_currency(hit, detail),
            confidence=derive_confidence(detail),
            valuation_date=derive_valuation_date(detail),
            search_hit=hit,
            property_detail=detail,
            analytics=derive_analytics(detail, amount, assessment_ratio=ratio),
        )

    def evict(self, address: str) -> bool:
        cache_key = cache_key_for(extract_address_components(address))
        return self.cache.evict(cache_key) if cache_key else False

    def clear_cache(self) -> int:
        return self.cache.clear()
