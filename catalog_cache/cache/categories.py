"""Cache categories and their default time-to-live table."""

from __future__ import annotations

from enum import Enum


class CacheCategory(str, Enum):
    LIST = "LIST"
    DETAIL = "DETAIL"
    FEATURED = "FEATURED"
    BY_CATEGORY = "BY_CATEGORY"
    SEARCH = "SEARCH"


DEFAULT_TTL_SECONDS: dict[CacheCategory, float] = {
    CacheCategory.LIST: 4 * 60 * 60,
    CacheCategory.DETAIL: 4 * 60 * 60,
    CacheCategory.FEATURED: 6 * 60 * 60,
    CacheCategory.BY_CATEGORY: 4 * 60 * 60,
    CacheCategory.SEARCH: 30 * 60,
}


def parse_category(value: str | CacheCategory) -> CacheCategory:
    if isinstance(value, CacheCategory):
        return value
    clean = value.strip().upper()
    try:
        return CacheCategory(clean)
    except ValueError:
        valid = ", ".join(category.value for category in CacheCategory)
        raise ValueError(f"Category must be one of: {valid}.") from None
