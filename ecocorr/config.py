"""
Correlation Engine Configuration Module

Centralized configuration for the ecosystem correlation engine.
Values come from the environment (prefix ``ECOCORR_``) or a ``.env`` file.

    settings = get_settings()
    cache = TTLCache(ttl_ms=settings.CACHE_TTL_MS, max_size=settings.CACHE_MAX_SIZE)
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = logging.getLogger(__name__)


class CorrelationSettings(BaseSettings):
    """Runtime settings for the correlation engine and its providers."""

    model_config = SettingsConfigDict(
        env_prefix="ECOCORR_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Cache
    CACHE_TTL_MS: int = 5 * 60 * 1000
    CACHE_MAX_SIZE: Optional[int] = 1000
    CACHE_CHECK_INTERVAL_MS: int = 60 * 1000

    # Ecosystem fusion
    CONSTITUENT_LIMIT: int = 10
    TIME_SERIES_CONSTITUENT_LIMIT: int = 5
    DEFAULT_MARKET_CAP: float = 1e9

    # Market data vendor
    LUNARCRUSH_API_KEY: Optional[str] = None
    LUNARCRUSH_BASE_URL: str = "https://lunarcrush.com/api4/public"
    HTTP_TIMEOUT: int = 15
    HTTP_RETRIES: int = 3
    HTTP_BACKOFF: float = 0.5

    # Service
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    def to_safe_dict(self) -> Dict[str, Any]:
        """Settings as a dict with the API key masked."""
        data = self.model_dump()
        key = data.get("LUNARCRUSH_API_KEY")
        if key:
            data["LUNARCRUSH_API_KEY"] = "****" + key[-4:]
        return data


@lru_cache()
def get_settings() -> CorrelationSettings:
    settings = CorrelationSettings()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Configuration (safe): %s", settings.to_safe_dict())
    return settings


def reload_settings() -> CorrelationSettings:
    """Drop the memoized settings and read them again."""
    get_settings.cache_clear()
    logger.info("Configuration cache cleared, reloading...")
    return get_settings()
