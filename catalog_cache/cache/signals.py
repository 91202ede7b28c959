"""Upstream cache-authority signal carried alongside catalog responses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
DISABLED_STATUSES = {"DISABLED", "DESACTIVADO", "OFF"}
INVALIDATED_RESPONSES = {"INVALIDATED", "PURGED"}
TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class UpstreamSignal:
    invalidated: bool = False
    disabled: bool = False

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> "UpstreamSignal":
        if not headers:
            return cls()
        lowered = {str(name).lower(): str(value).strip() for name, value in headers.items()}
        cache_control = lowered.get("cache-control", "").lower()
        invalidated = (
            lowered.get("x-cache-invalidated", "").lower() in TRUTHY
            or lowered.get("x-cache-response", "").upper() in INVALIDATED_RESPONSES
        )
        disabled = (
            lowered.get("x-cache-status", "").upper() in DISABLED_STATUSES
            or "no-store" in cache_control
        )
        return cls(invalidated=invalidated, disabled=disabled)

    def consumed(self) -> "UpstreamSignal":
        """Invalidation applies once; the disabled flag stays until a later response clears it."""
        return UpstreamSignal(invalidated=False, disabled=self.disabled)


@dataclass(frozen=True)
class SignalledResponse(Generic[T]):
    """Fetch result paired with the cache-authority signal of the response it came from."""

    data: T
    signal: UpstreamSignal
