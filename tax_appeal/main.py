import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_502_BAD_GATEWAY, HTTP_503_SERVICE_UNAVAILABLE

from .core.config import settings
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .data.zillow_client import ZillowApiError, ZillowMissingCredentialsError
from .routers.valuation import router as valuation_router

logger = logging.getLogger(__name__)

async def missing_credentials_handler(request: Request, exc: ZillowMissingCredentialsError):
    logger.warning("valuation lookup not configured", extra={"error": str(exc), "path": request.url.path})
    return JSONResponse({"detail": str(exc)}, status_code=HTTP_503_SERVICE_UNAVAILABLE)

async def upstream_error_handler(request: Request, exc: ZillowApiError):
    logger.warning(
        "valuation lookup failed",
        extra={"error": exc.message, "upstream_status": exc.status, "path": request.url.path},
    )
    return JSONResponse({"detail": exc.message}, status_code=HTTP_502_BAD_GATEWAY)

def _origins() -> list[str]:
    if not settings.ALLOW_ORIGINS:
        return ["*"]
    return [o.strip() for o in settings.ALLOW_ORIGINS.split(",") if o.strip()]

def create_app() -> FastAPI:
    """
    Build the tax-appeal API. Upstream Zillow failures surface as 502, and a
    missing RapidAPI key as 503, from any route that performs a lookup.
    """
    configure_logging()

    app = FastAPI(
        title="Property Tax Appeal Valuation API",
        version="0.3.0",
        description="Address normalization, Zillow valuation lookup and tax-appeal analytics.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Request-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)

    app.add_exception_handler(ZillowMissingCredentialsError, missing_credentials_handler)
    app.add_exception_handler(ZillowApiError, upstream_error_handler)

    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    app.include_router(valuation_router, prefix="/v1", tags=["valuation"])
    return app

app = create_app()
