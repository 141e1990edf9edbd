"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    off_base_url: str = _get_env("OFF_BASE_URL", "https://world.openfoodfacts.org")
    off_user_agent: str = _get_env("OFF_USER_AGENT", "PairingSearch/0.1 (+https://world.openfoodfacts.org)")
    request_timeout_seconds: float = float(_get_env("REQUEST_TIMEOUT_SECONDS", "10"))
    locale_prefix: str = _get_env("LOCALE_PREFIX", "en:")
    search_bar_ratio: float = float(_get_env("SEARCH_BAR_RATIO", "0.8"))
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "300"))
    cache_max_entries: int = int(_get_env("CACHE_MAX_ENTRIES", "1024"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
