"""Cache invalidation after catalog content changes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.store import CacheStore

LOGGER = logging.getLogger(__name__)

RECENT_CHANGE_WINDOW_SECONDS = 120.0

MUTATION_TARGETS: dict[str, tuple[CacheCategory, ...]] = {
    "service": tuple(CacheCategory),
    "category": (CacheCategory.BY_CATEGORY, CacheCategory.LIST),
    "featured": (CacheCategory.FEATURED,),
}

LISTING_CATEGORIES: tuple[CacheCategory, ...] = (
    CacheCategory.LIST,
    CacheCategory.FEATURED,
    CacheCategory.BY_CATEGORY,
    CacheCategory.SEARCH,
)


def invalidate_on_mutation(store: CacheStore, kind: str) -> int:
    clean = kind.strip().lower()
    targets = MUTATION_TARGETS.get(clean)
    if targets is None:
        raise ValueError(f"Mutation kind must be one of: {', '.join(MUTATION_TARGETS)}.")
    removed = sum(store.invalidate_category(category) for category in targets)
    LOGGER.info("cache invalidated after mutation: kind=%s removed=%s", clean, removed)
    return removed


def _parse_timestamp(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value / 1000.0
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def has_recent_changes(
    services: Iterable[Any],
    now: float,
    window_seconds: float = RECENT_CHANGE_WINDOW_SECONDS,
) -> bool:
    """True when any service was created or updated within `window_seconds` of `now`.

    `createdAt`/`updatedAt` may be ISO-8601 strings or epoch milliseconds;
    unparseable values are ignored.
    """
    threshold = now - window_seconds
    for service in services:
        if not isinstance(service, dict):
            continue
        for field in ("createdAt", "updatedAt"):
            stamp = _parse_timestamp(service.get(field))
            if stamp is not None and stamp > threshold:
                return True
    return False


def invalidate_recent_changes(store: CacheStore, services: Iterable[Any]) -> int:
    """Purge the listing categories when a listing response shows freshly changed services."""
    if not has_recent_changes(services, store.clock()):
        return 0
    removed = sum(store.invalidate_category(category) for category in LISTING_CATEGORIES)
    LOGGER.info("cache invalidated after recent catalog changes: removed=%s", removed)
    return removed
