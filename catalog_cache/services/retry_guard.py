"""Consecutive-failure tracking with a cool-down window for fetch retries."""

from __future__ import annotations

import time
from typing import Callable


class RetryGuard:
    """Blocks new attempts once failures exceed `max_retries` inside the cool-down window."""

    def __init__(
        self,
        max_retries: int = 2,
        cooldown_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_retries = max(0, max_retries)
        self.cooldown_seconds = max(0.0, cooldown_seconds)
        self.clock = clock
        self.consecutive_failures = 0
        self.last_failure_at: float | None = None

    def record_failure(self) -> int:
        self.consecutive_failures += 1
        self.last_failure_at = self.clock()
        return self.consecutive_failures

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def is_blocked(self) -> bool:
        if self.consecutive_failures <= self.max_retries or self.last_failure_at is None:
            return False
        return (self.clock() - self.last_failure_at) < self.cooldown_seconds

    def blocked_until(self) -> float | None:
        if not self.is_blocked() or self.last_failure_at is None:
            return None
        return self.last_failure_at + self.cooldown_seconds
