import logging
import threading
from typing import Mapping, Protocol

from cachetools import TTLCache

from ..core.config import settings
from ..core.utils import to_number

logger = logging.getLogger(__name__)

class RatioSource(Protocol):
    def fetch_ratio(self, county_fips: str) -> float | None: ...

class StaticRatioSource(RatioSource):
    """County FIPS → default assessment ratio from a fixed mapping."""
    def __init__(self, ratios: Mapping[str, object] | None = None):
        raw = settings.ASSESSMENT_RATIOS if ratios is None else ratios
        self.ratios: dict[str, float] = {}
        for fips, value in raw.items():
            ratio = to_number(value)
            if ratio is not None and ratio > 0:
                self.ratios[str(fips).strip()] = float(ratio)
            else:
                logger.warning("ignoring assessment ratio", extra={"county_fips": fips, "value": value})

    def fetch_ratio(self, county_fips: str) -> float | None:
        return self.ratios.get(county_fips)

class AssessmentRatioStore:
    """
    Short-lived cache in front of a ratio source. Misses (None) are cached
    too, so an unknown county doesn't hit the source on every lookup.
    """
    def __init__(self, source: RatioSource | None = None, ttl_seconds: int | None = None):
        self.source = source or StaticRatioSource()
        ttl = settings.ASSESSMENT_RATIO_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._cache: TTLCache = TTLCache(maxsize=1024, ttl=ttl)
        self._lock = threading.Lock()

    def get_ratio(self, county_fips: str | None) -> float | None:
        if not county_fips or not county_fips.strip():
            return None
        key = county_fips.strip()
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        ratio = self.source.fetch_ratio(key)
        with self._lock:
            self._cache[key] = ratio
        return ratio

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
