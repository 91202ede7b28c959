"""Cache inspection and maintenance tools."""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from catalog_cache.lib.formatters import format_response, line_age, line_percent
from catalog_cache.providers.http import ProviderError
from catalog_cache.runtime.monitoring import log_cache_event

if TYPE_CHECKING:
    from catalog_cache.tools.registry import ToolServices


def register_cache_tools(mcp: FastMCP, services: "ToolServices") -> None:
    admin = services.cache_admin

    @mcp.tool(description="Get cache statistics: hits, misses, entries, size, hit rate and efficiency.")
    def get_cache_stats() -> str:
        return json.dumps(asdict(admin.snapshot()), ensure_ascii=True)

    @mcp.tool(description="Get cache hit rate and efficiency level as text.")
    def get_cache_hit_rate() -> str:
        snapshot = admin.snapshot()
        return format_response(
            title="Cache hit rate",
            lines=[
                line_percent("hit_rate", snapshot.hit_rate),
                f"efficiency: {snapshot.efficiency}",
                f"hits: {snapshot.hits}",
                f"misses: {snapshot.misses}",
            ],
        )

    @mcp.tool(description="List cached entries ordered by hit count (most used first).")
    def list_cache_entries(limit: int = 50) -> str:
        entries = admin.list_entries(limit=limit)
        lines = [
            f"{idx + 1}. {entry.key} | hits={entry.hits} | {line_age('age', entry.age_seconds)}"
            for idx, entry in enumerate(entries)
        ]
        return format_response(
            title=f"Cache entries ({len(entries)})",
            lines=lines or ["(empty)"],
        )

    @mcp.tool(description="Clear the cache, or only the entries whose key contains `pattern`.")
    def clear_cache(pattern: str = "") -> str:
        started = time.perf_counter()
        removed = admin.clear(pattern or None)
        log_cache_event("clear_cache", (time.perf_counter() - started) * 1000.0, True, removed=removed, pattern=pattern)
        return format_response(title="Cache cleared", lines=[f"removed: {removed}", f"pattern: {pattern or '*'}"])

    @mcp.tool(description="Invalidate every entry of one category (LIST, DETAIL, FEATURED, BY_CATEGORY, SEARCH).")
    def invalidate_cache_category(category: str) -> str:
        started = time.perf_counter()
        try:
            removed = admin.invalidate_category(category)
        except ValueError:
            log_cache_event("invalidate_cache_category", (time.perf_counter() - started) * 1000.0, False)
            raise
        log_cache_event("invalidate_cache_category", (time.perf_counter() - started) * 1000.0, True, removed=removed)
        return format_response(title="Cache category invalidated", lines=[f"category: {category.upper()}", f"removed: {removed}"])

    @mcp.tool(description="Invalidate the categories affected by a content change (service, category, featured).")
    def invalidate_after_mutation(kind: str) -> str:
        started = time.perf_counter()
        removed = admin.invalidate_mutation(kind)
        log_cache_event("invalidate_after_mutation", (time.perf_counter() - started) * 1000.0, True, removed=removed)
        return format_response(title="Cache invalidated after change", lines=[f"kind: {kind}", f"removed: {removed}"])

    @mcp.tool(description="Reset cache hit/miss statistics.")
    def reset_cache_stats() -> str:
        started = time.perf_counter()
        admin.reset_stats()
        log_cache_event("reset_cache_stats", (time.perf_counter() - started) * 1000.0, True)
        return format_response(title="Cache statistics reset", lines=["hits: 0", "misses: 0"])

    @mcp.tool(description="Run one cache sweep now (expired entries, then least-used above the threshold).")
    def sweep_cache() -> str:
        started = time.perf_counter()
        removed = admin.sweep()
        log_cache_event("sweep_cache", (time.perf_counter() - started) * 1000.0, True, removed=removed)
        return format_response(title="Cache sweep complete", lines=[f"removed: {removed}"])

    @mcp.tool(description="Prefetch the featured and unfiltered service listings into the cache.")
    async def warm_cache() -> str:
        started = time.perf_counter()
        try:
            keys = await admin.warm()
        except ProviderError:
            log_cache_event("warm_cache", (time.perf_counter() - started) * 1000.0, False)
            raise
        log_cache_event("warm_cache", (time.perf_counter() - started) * 1000.0, True)
        warning = None if keys else "Catalog client is not configured."
        return format_response(title="Cache warm complete", warning=warning, lines=[f"key: {key}" for key in keys])
