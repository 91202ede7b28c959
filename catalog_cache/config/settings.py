"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from catalog_cache.cache.categories import DEFAULT_TTL_SECONDS, CacheCategory


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the cache layer and its operator server."""

    app_name: str = "catalog-cache"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    catalog_api_base_url: str = "http://localhost:5000/api"
    request_timeout_seconds: float = 15.0
    cache_max_size: int = 50
    cache_sweep_interval_seconds: float = 60.0
    cache_durable_path: str | None = None
    cache_durable_max_bytes: int = 5 * 1024 * 1024
    cache_ttl_seconds: dict[CacheCategory, float] = field(default_factory=lambda: dict(DEFAULT_TTL_SECONDS))
    cache_set_eviction_threshold: float = 0.9
    cache_set_eviction_fraction: float = 0.2
    cache_sweep_threshold: float = 0.85
    cache_sweep_fraction: float = 0.15
    cache_durable_cleanup_fraction: float = 0.3
    fetch_max_retries: int = 2
    fetch_cooldown_seconds: float = 5.0


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _ttl_table() -> dict[CacheCategory, float]:
    return {
        category: _as_float(os.getenv(f"CACHE_TTL_{category.value}_SECONDS"), default)
        for category, default in DEFAULT_TTL_SECONDS.items()
    }


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    durable_path = (os.getenv("CACHE_DURABLE_PATH") or "").strip()
    return Settings(
        app_name=os.getenv("APP_NAME", "catalog-cache"),
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        catalog_api_base_url=os.getenv("CATALOG_API_BASE_URL", "http://localhost:5000/api").rstrip("/"),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        cache_max_size=max(1, _as_int(os.getenv("CACHE_MAX_SIZE"), 50)),
        cache_sweep_interval_seconds=_as_float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS"), 60.0),
        cache_durable_path=durable_path or None,
        cache_durable_max_bytes=_as_int(os.getenv("CACHE_DURABLE_MAX_BYTES"), 5 * 1024 * 1024),
        cache_ttl_seconds=_ttl_table(),
        cache_set_eviction_threshold=_as_float(os.getenv("CACHE_SET_EVICTION_THRESHOLD"), 0.9),
        cache_set_eviction_fraction=_as_float(os.getenv("CACHE_SET_EVICTION_FRACTION"), 0.2),
        cache_sweep_threshold=_as_float(os.getenv("CACHE_SWEEP_THRESHOLD"), 0.85),
        cache_sweep_fraction=_as_float(os.getenv("CACHE_SWEEP_FRACTION"), 0.15),
        cache_durable_cleanup_fraction=_as_float(os.getenv("CACHE_DURABLE_CLEANUP_FRACTION"), 0.3),
        fetch_max_retries=max(0, _as_int(os.getenv("FETCH_MAX_RETRIES"), 2)),
        fetch_cooldown_seconds=_as_float(os.getenv("FETCH_COOLDOWN_SECONDS"), 5.0),
    )
