"""Application entrypoint for the catalog cache operator server."""

from __future__ import annotations

import asyncio
import os
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from catalog_cache.cache.durable import DurableStore, JsonFileDurableStore, MemoryDurableStore
from catalog_cache.cache.store import CacheStore
from catalog_cache.config.settings import Settings, get_settings
from catalog_cache.providers.catalog_api import CatalogApiClient
from catalog_cache.services.base import ServiceContext
from catalog_cache.tools.registry import build_tool_services, register_all_tools


def resolve_transport_mode(configured_mode: str) -> str:
    if os.getenv("RENDER") and configured_mode == "stdio":
        return "http"
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("RENDER") or os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


def build_durable_store(settings: Settings) -> DurableStore:
    if settings.cache_durable_path:
        return JsonFileDurableStore(settings.cache_durable_path, max_bytes=settings.cache_durable_max_bytes)
    return MemoryDurableStore(max_bytes=settings.cache_durable_max_bytes)


def build_cache_store(settings: Settings) -> CacheStore:
    return CacheStore(
        ttl_table=settings.cache_ttl_seconds,
        max_size=settings.cache_max_size,
        durable=build_durable_store(settings),
        sweep_interval_seconds=settings.cache_sweep_interval_seconds,
        set_eviction_threshold=settings.cache_set_eviction_threshold,
        set_eviction_fraction=settings.cache_set_eviction_fraction,
        sweep_threshold=settings.cache_sweep_threshold,
        sweep_fraction=settings.cache_sweep_fraction,
        durable_cleanup_fraction=settings.cache_durable_cleanup_fraction,
    )


def build_service_context(settings: Settings, store: CacheStore | None = None) -> ServiceContext:
    return ServiceContext(
        store=store or build_cache_store(settings),
        catalog_client=CatalogApiClient(settings.catalog_api_base_url, settings.request_timeout_seconds),
        fetch_max_retries=settings.fetch_max_retries,
        fetch_cooldown_seconds=settings.fetch_cooldown_seconds,
    )


async def run() -> None:
    settings = get_settings()
    service_ctx = build_service_context(settings)
    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    services = build_tool_services(service_ctx)
    register_all_tools(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "mode": resolved_mode,
                "cache": asdict(services.cache_admin.snapshot()),
            }
        )

    service_ctx.store.start()
    try:
        if resolved_mode == "stdio":
            await mcp.run_stdio_async()
        elif resolved_http_transport == "streamable":
            await mcp.run_streamable_http_async()
        else:
            await mcp.run_sse_async()
    finally:
        service_ctx.store.dispose()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
