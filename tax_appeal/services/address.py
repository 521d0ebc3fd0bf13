"""
Free-text mailing address → (street line, "City, ST zip") split.

The valuation search wants the two halves separately, but assessment notices
come through OCR in every shape: multi-line, comma separated, or a single run
of words. Parsing is heuristic and returns None when it is not confident;
callers treat that as "cannot look up", never as a partial address.
"""
import re

from ..data.base import AddressComponents

STATE_ABBREVIATIONS = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "district of columbia": "DC",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
}

STREET_SUFFIXES = frozenset({
    "st", "street",
    "rd", "road",
    "ave", "avenue",
    "blvd", "boulevard",
    "dr", "drive",
    "ln", "lane",
    "way",
    "pkwy", "parkway",
    "pl", "place",
    "plz", "plaza",
    "ct", "court",
    "trl", "trail",
    "cir", "circle",
    "terr", "terrace",
    "sq", "square",
    "hwy", "highway",
    "loop",
})

_ZIP = r"(\d{5}(?:-\d{4})?)"
_COMMA_PATTERN = re.compile(r"^(.+?),\s*([^,]+),\s*([^,]+)\s+" + _ZIP + r"$")
_TRAILING_PATTERN = re.compile(r"^(.+)\s+([^\s,]+)\s+" + _ZIP + r"$")
_TWO_LETTERS = re.compile(r"^[A-Za-z]{2}$")
_DIGIT = re.compile(r"\d")
_LETTER = re.compile(r"[A-Za-z]")

def normalize_state(token: str) -> str:
    """2-letter codes are uppercased, full names abbreviated, anything else kept."""
    trimmed = token.strip()
    if not trimmed:
        return token
    if _TWO_LETTERS.match(trimmed):
        return trimmed.upper()
    return STATE_ABBREVIATIONS.get(trimmed.lower(), trimmed)

def _clean(raw: str) -> str:
    text = re.sub(r"\s*\n\s*", ", ", raw)
    text = re.sub(r"\s*,\s*", ", ", text)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r",?\s*USA$", "", text, flags=re.IGNORECASE)
    return text.strip()

def _components(street: str, city: str, state: str, zip_code: str) -> AddressComponents:
    return AddressComponents(
        address_line=street,
        city_state_zip=f"{city}, {normalize_state(state)} {zip_code}",
    )

def _split_on_suffix(words: list[str]) -> tuple[str, str] | None:
    # The first word is the house number, so a suffix can't sit there
    suffix_index = -1
    for i in range(1, len(words)):
        if words[i].lower() in STREET_SUFFIXES:
            suffix_index = i
    if suffix_index == -1 or suffix_index >= len(words) - 1:
        return None
    street = " ".join(words[:suffix_index + 1])
    city = " ".join(words[suffix_index + 1:])
    if street and city:
        return street, city
    return None

def _split_on_shape(words: list[str]) -> tuple[str, str] | None:
    # Grow the city one word at a time; the last split whose street still
    # looks like "<number> <name>" keeps the longest city.
    candidate = None
    for i in range(1, len(words)):
        street = " ".join(words[:len(words) - i])
        city = " ".join(words[len(words) - i:])
        if _DIGIT.search(street) and _LETTER.search(street) and city:
            candidate = (street, city)
    return candidate

def extract_address_components(raw: str | None) -> AddressComponents | None:
    if not raw:
        return None
    text = _clean(raw)

    match = _COMMA_PATTERN.match(text)
    if match:
        street, city, state, zip_code = (g.strip() for g in match.groups())
        if street and city:
            return _components(street, city, state, zip_code)

    match = _TRAILING_PATTERN.match(text)
    if match:
        left, state, zip_code = match.groups()
        words = left.strip().split()
        split = _split_on_suffix(words) or _split_on_shape(words)
        if split:
            return _components(split[0], split[1], state, zip_code)

    return None

normalize = extract_address_components
