"""Cache-first fetch orchestration with generation tracking and retry suppression."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from catalog_cache.cache.categories import CacheCategory
from catalog_cache.cache.keys import Identifier, make_key
from catalog_cache.cache.signals import SignalledResponse, UpstreamSignal
from catalog_cache.cache.store import CacheStore
from catalog_cache.services.retry_guard import RetryGuard

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Any]]
SuccessCallback = Callable[[Any, bool], None]
ErrorCallback = Callable[[BaseException], None]


@dataclass(frozen=True)
class FetchState(Generic[T]):
    data: T | None
    loading: bool
    error: str | None
    is_from_cache: bool


class FetchOrchestrator(Generic[T]):
    """Wraps one async fetch for one cache key.

    Every trigger bumps a generation counter; a completion only touches state
    when its captured generation is still the live one, so the last trigger
    wins regardless of completion order.
    """

    def __init__(
        self,
        store: CacheStore,
        category: CacheCategory,
        identifier: Identifier,
        fetch: FetchFn,
        *,
        max_retries: int = 2,
        cooldown_seconds: float = 5.0,
        enabled: bool = True,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.category = category
        self.identifier = identifier
        self.fetch = fetch
        self.enabled = enabled
        self.on_success = on_success
        self.on_error = on_error
        self.retry_guard = RetryGuard(max_retries=max_retries, cooldown_seconds=cooldown_seconds, clock=clock)
        self.upstream: UpstreamSignal | None = None
        self.data: T | None = None
        self.loading = False
        self.error: str | None = None
        self.is_from_cache = False
        self._generation = 0
        self._in_flight = False
        self._task: asyncio.Future[Any] | None = None
        self._disposed = False

    @property
    def key(self) -> str:
        return make_key(self.category, self.identifier)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def disposed(self) -> bool:
        return self._disposed

    def state(self) -> FetchState[T]:
        return FetchState(data=self.data, loading=self.loading, error=self.error, is_from_cache=self.is_from_cache)

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _is_live(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    def _cached(self) -> Any | None:
        upstream = self.upstream
        if upstream is not None and upstream.invalidated:
            self.upstream = upstream.consumed()
        return self.store.get(self.category, self.identifier, upstream)

    def _unwrap(self, result: Any) -> Any:
        if isinstance(result, SignalledResponse):
            self.upstream = result.signal
            return result.data
        return result

    async def load(self, force: bool = False) -> None:
        if not self.enabled or self._disposed:
            return
        if self._in_flight and not force:
            return
        if not force and self.retry_guard.is_blocked():
            LOGGER.info(
                "fetch suppressed during cool-down: key=%s failures=%s",
                self.key,
                self.retry_guard.consecutive_failures,
            )
            return

        self._cancel_in_flight()
        self._generation += 1
        generation = self._generation
        self.loading = True
        self._in_flight = True
        self.error = None
        task: asyncio.Future[Any] | None = None
        try:
            if not force:
                cached = self._cached()
                if cached is not None:
                    self.data = cached
                    self.is_from_cache = True
                    self.retry_guard.record_success()
                    if self.on_success:
                        self.on_success(cached, True)
                    return

            task = asyncio.ensure_future(self.fetch())
            self._task = task
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                task.cancel()
                raise

            if task.cancelled():
                LOGGER.debug("fetch cancelled: key=%s generation=%s", self.key, generation)
                return
            error = task.exception()
            if not self._is_live(generation):
                LOGGER.debug("stale fetch result discarded: key=%s generation=%s", self.key, generation)
                return
            if error is not None:
                failures = self.retry_guard.record_failure()
                self.error = str(error) or error.__class__.__name__
                LOGGER.warning("fetch failed: key=%s failures=%s error=%s", self.key, failures, self.error)
                if self.on_error:
                    self.on_error(error)
                return

            data = self._unwrap(task.result())
            if self.upstream is None or not self.upstream.disabled:
                self.store.set(self.category, self.identifier, data)
            self.data = data
            self.is_from_cache = False
            self.retry_guard.record_success()
            if self.on_success:
                self.on_success(data, False)
        finally:
            if self._task is task:
                self._task = None
            if self._is_live(generation):
                self.loading = False
                self._in_flight = False

    async def mount(self) -> None:
        await self.load()

    async def refetch(self) -> None:
        self.store.remove(self.category, self.identifier)
        await self.load(force=True)

    async def retarget(self, identifier: Identifier, fetch: FetchFn | None = None) -> None:
        """Point the orchestrator at a new identifier and load it, superseding any in-flight fetch.

        Failures recorded against the previous key do not carry over to the new one.
        """
        if make_key(self.category, identifier) != self.key:
            self.retry_guard.record_success()
            self.error = None
        self.identifier = identifier
        if fetch is not None:
            self.fetch = fetch
        self._cancel_in_flight()
        self._in_flight = False
        await self.load()

    def clear_cache(self) -> None:
        self.store.remove(self.category, self.identifier)
        self.data = None
        self.is_from_cache = False

    def apply_upstream(self, signal: UpstreamSignal | None) -> None:
        self.upstream = signal

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_in_flight()

    async def __aenter__(self) -> "FetchOrchestrator[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.dispose()
