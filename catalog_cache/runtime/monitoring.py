"""Structured event logging and cache health snapshots."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass

HIGH_EFFICIENCY_HIT_RATE = 0.8
MEDIUM_EFFICIENCY_HIT_RATE = 0.5


@dataclass
class CacheHealthSnapshot:
    hits: int
    misses: int
    entry_count: int
    approximate_size_bytes: int
    size_label: str
    hit_rate: float
    efficiency: str
    sweep_running: bool


def efficiency_level(hits: int, misses: int) -> str:
    total = hits + misses
    if total == 0:
        return "unknown"
    rate = hits / total
    if rate >= HIGH_EFFICIENCY_HIT_RATE:
        return "high"
    if rate >= MEDIUM_EFFICIENCY_HIT_RATE:
        return "medium"
    return "low"


def log_cache_event(
    tool: str,
    latency_ms: float,
    success: bool,
    removed: int | None = None,
    pattern: str | None = None,
) -> None:
    payload: dict[str, object] = {
        "tool": tool,
        "latency_ms": round(latency_ms, 3),
        "success": success,
        "timestamp": int(time.time()),
    }
    if removed is not None:
        payload["removed"] = removed
    if pattern:
        payload["pattern"] = pattern
    print(json.dumps(payload, ensure_ascii=True))
