import hashlib
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable

from dateutil import parser as date_parser

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

def collapse_whitespace(value: str) -> str:
    """Trim and collapse runs of whitespace (including newlines) to one space."""
    return " ".join(value.split())

def to_number(value: Any) -> float | int | None:
    """
    Coerce loosely-typed vendor values into a finite number.

    Numbers pass through when finite. Strings are stripped of currency
    symbols, separators and units ("$600,000", "2,100 sqft") before parsing.
    Booleans, NaN/Infinity and anything unparseable become None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            return None
        parsed = float(match.group(0))
        return parsed if math.isfinite(parsed) else None
    return None

def finite(value: float | None) -> float | None:
    """Pass finite numbers through; None for None, NaN and +/-Infinity."""
    if value is None or not math.isfinite(value):
        return None
    return value

def round_half_up(value: float | None) -> int | None:
    """Round to the nearest integer, halves towards +infinity. Non-finite → None."""
    if finite(value) is None:
        return None
    return int(math.floor(value + 0.5))

def average(values: Iterable[float | None]) -> float | None:
    usable = [v for v in values if finite(v) is not None]
    if not usable:
        return None
    return finite(sum(usable) / len(usable))

def epoch_to_datetime(value: float) -> datetime | None:
    """Epoch millis (> 1e12) or seconds → aware UTC datetime."""
    seconds = value / 1000.0 if abs(value) > 1e12 else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None

# Two defaults a year apart: whatever the string leaves out differs between them.
_DEFAULT_A = datetime(1, 1, 1)
_DEFAULT_B = datetime(2, 1, 1)

def parse_datetime(value: Any) -> datetime | None:
    """
    Parse a date string; naive results are taken as UTC. Strings without a
    year ("March", "May 15") give None instead of borrowing one.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = date_parser.parse(text, default=_DEFAULT_A)
        check = date_parser.parse(text, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if parsed.year != check.year:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

def epoch_seconds(moment: datetime) -> float | None:
    try:
        return moment.timestamp()
    except (OverflowError, OSError, ValueError):
        return None

def iso_utc(moment: datetime) -> str | None:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    try:
        utc = moment.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")

def fnv1a_32(s: str) -> int:
    """Deterministic, fast hash for seed generation."""
    h = 0x811c9dc5
    for c in s.encode("utf-8"):
        h ^= c
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h

def seeded_rand(seed: int, n: int = 1) -> list[float]:
    """
    Stateless pseudo-random generator (Mulberry32-like) so
    same seed → same outputs without storing PRNG state.
    """
    out = []
    t = (seed + 0x6D2B79F5) & 0xFFFFFFFF
    for _ in range(n):
        t = (t ^ (t >> 15)) * (t | 1) & 0xFFFFFFFF
        t ^= t + ((t ^ (t >> 7)) * (t | 61) & 0xFFFFFFFF)
        r = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        out.append(r)
    return out

def weak_etag(payload_bytes: bytes) -> str:
    """Weak ETag for client-side conditional requests."""
    h = hashlib.sha256(payload_bytes).hexdigest()[:24]
    return f'W/"{h}"'
