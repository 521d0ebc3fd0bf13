import json
from dataclasses import asdict
from functools import lru_cache

from fastapi import APIRouter, Depends, Header, HTTPException, Response, Query

from ..core.security import require_api_key, rate_limit
from ..core.utils import weak_etag
from ..schemas import (
    AddressRequest,
    AddressResponse,
    CacheClearResponse,
    ValuationRequest,
    ValuationResponse,
)
from ..services.address import extract_address_components
from ..services.valuation_service import ValuationService

router = APIRouter()

@lru_cache(maxsize=1)
def service_dep() -> ValuationService:
    # One instance per process: it owns the lookup cache.
    return ValuationService()

async def _value(svc: ValuationService, address: str, use_cache: bool) -> dict:
    result = await svc.lookup_with_status(address, use_cache=use_cache)
    return {
        "address": address,
        "components": asdict(result.components) if result.components else None,
        "valuation": asdict(result.valuation) if result.valuation else None,
        "cached": result.cached,
    }

def _respond(payload: dict, response: Response, if_none_match: str | None):
    body = json.dumps({k: v for k, v in payload.items() if k != "cached"}, separators=(',',':'), default=str)
    etag = weak_etag(body.encode("utf-8"))
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})
    payload["etag"] = etag
    response.headers["ETag"] = etag
    return payload

@router.post("/valuation", response_model=ValuationResponse)
async def post_valuation(
    body: ValuationRequest,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: ValuationService = Depends(service_dep),
):
    if not body.address.strip():
        raise HTTPException(status_code=400, detail="address is required")
    payload = await _value(svc, body.address, body.use_cache)
    return _respond(payload, response, if_none_match)

@router.get("/valuation", response_model=ValuationResponse)
async def get_valuation(
    response: Response,
    address: str = Query(..., min_length=4),
    use_cache: bool = Query(True),
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: ValuationService = Depends(service_dep),
):
    payload = await _value(svc, address, use_cache)
    return _respond(payload, response, if_none_match)

@router.post("/address/normalize", response_model=AddressResponse)
def normalize_address(body: AddressRequest, _auth = Depends(require_api_key)):
    components = extract_address_components(body.address)
    return {"address": body.address, "components": asdict(components) if components else None}

@router.delete("/valuation/cache", response_model=CacheClearResponse, response_model_exclude_none=True)
def clear_valuation_cache(
    address: str | None = Query(None),
    _auth = Depends(require_api_key),
    svc: ValuationService = Depends(service_dep),
):
    if address:
        return {"evicted": svc.evict(address)}
    return {"cleared": svc.clear_cache()}
