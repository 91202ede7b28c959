"""Canonical cache key derivation."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Union

from catalog_cache.cache.categories import CacheCategory

Identifier = Union[str, Mapping[str, Any]]
KEY_SEPARATOR = ":"


def make_key(category: CacheCategory, identifier: Identifier) -> str:
    """Build `CATEGORY:identifier`, sorting mapping keys so equal filter sets share a key."""
    if isinstance(identifier, str):
        return f"{category.value}{KEY_SEPARATOR}{identifier}"
    if isinstance(identifier, Mapping):
        ordered = {str(name): identifier[name] for name in sorted(identifier, key=str)}
        payload = json.dumps(ordered, separators=(",", ":"), ensure_ascii=False, default=str)
        return f"{category.value}{KEY_SEPARATOR}{payload}"
    raise TypeError("Identifier must be a string or a mapping of filter parameters.")


def category_of(key: str) -> CacheCategory | None:
    prefix = key.split(KEY_SEPARATOR, 1)[0]
    try:
        return CacheCategory(prefix)
    except ValueError:
        return None
