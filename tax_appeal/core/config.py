import json
import os
from pydantic import BaseModel

def _json_env(name: str, default: str = "{}") -> dict:
    raw = os.getenv(name, default)
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    DEFAULT_CURRENCY: str = os.getenv("CURRENCY", "USD")

    # Zillow (RapidAPI proxy)
    ZILLOW_PROVIDER: str = os.getenv("ZILLOW_PROVIDER", "http")   # http | mock
    ZILLOW_API_KEY: str | None = os.getenv("ZILLOW_API_KEY")
    ZILLOW_BASE_URL: str = os.getenv("ZILLOW_BASE_URL", "https://zillow-com1.p.rapidapi.com")
    ZILLOW_HOST: str = os.getenv("ZILLOW_HOST", "zillow-com1.p.rapidapi.com")
    ZILLOW_TIMEOUT_SECONDS: float = float(os.getenv("ZILLOW_TIMEOUT_SECONDS", "15"))

    # Jurisdiction assessment ratios, keyed by county FIPS
    ASSESSMENT_RATIOS: dict = _json_env("ASSESSMENT_RATIOS")
    ASSESSMENT_RATIO_TTL_SECONDS: int = int(os.getenv("ASSESSMENT_RATIO_TTL_SECONDS", "300"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
