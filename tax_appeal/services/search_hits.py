"""
Pull candidate properties out of a propertyExtendedSearch response.

The endpoint answers in a few shapes: a list of hits under `props` or
`results` (sometimes wrapped in `body`), a bare list, or a single property
object when the location resolves exactly. Those are checked in that order;
a depth-capped structural scan is the last resort for anything else.
"""
from typing import Any

MAX_SCAN_DEPTH = 4
_LIST_KEYS = ("props", "results")

def is_search_hit(value: Any) -> bool:
    """Heuristic: an object with a zpid, an address, or a price."""
    if not isinstance(value, dict):
        return False
    zpid = value.get("zpid")
    if isinstance(zpid, (str, int)) and not isinstance(zpid, bool):
        return True
    address = value.get("address")
    if isinstance(address, str) and address.strip():
        return True
    price = value.get("price")
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        return True
    return isinstance(price, str) and bool(price.strip())

def hit_zpid(hit: dict) -> str | None:
    zpid = hit.get("zpid")
    if isinstance(zpid, bool):
        return None
    if isinstance(zpid, int):
        return str(zpid)
    if isinstance(zpid, str) and zpid:
        return zpid
    return None

def _dedupe(hits: list[dict]) -> list[dict]:
    seen = set()
    out = []
    for hit in hits:
        zpid = hit_zpid(hit)
        if zpid is not None:
            if zpid in seen:
                continue
            seen.add(zpid)
        out.append(hit)
    return out

def _hit_list(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if is_search_hit(item)]

def _known_shapes(response: Any) -> list[dict]:
    if isinstance(response, list):
        return _hit_list(response)
    if not isinstance(response, dict):
        return []

    containers = [response]
    if isinstance(response.get("body"), dict):
        containers.append(response["body"])
    for container in containers:
        for key in _LIST_KEYS:
            hits = _hit_list(container.get(key))
            if hits:
                return hits

    if is_search_hit(response):
        return [response]
    return []

def _scan(response: Any) -> list[dict]:
    hits = []
    seen_ids = set()

    def visit(value: Any, depth: int) -> None:
        if depth > MAX_SCAN_DEPTH or value is None:
            return
        if isinstance(value, list):
            for item in value:
                visit(item, depth + 1)
            return
        if not isinstance(value, dict) or id(value) in seen_ids:
            return
        seen_ids.add(id(value))
        if is_search_hit(value):
            hits.append(value)
        for child in value.values():
            visit(child, depth + 1)

    visit(response, 0)
    return hits

def extract_search_hits(response: Any) -> list[dict]:
    return _dedupe(_known_shapes(response) or _scan(response))

def best_hit(response: Any) -> dict | None:
    """First hit carrying a zpid, else the first hit at all."""
    hits = extract_search_hits(response)
    for hit in hits:
        if hit.get("zpid") is not None:
            return hit
    return hits[0] if hits else None
