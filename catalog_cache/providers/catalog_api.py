"""Catalog (service listing) API client."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import requests

from catalog_cache.cache.signals import SignalledResponse
from catalog_cache.providers.http import ProviderError, fetch_json


class CatalogApiClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session

    def _get(self, path: str, params: dict[str, Any] | None = None) -> SignalledResponse[Any]:
        payload, signal = fetch_json(
            f"{self.base_url}{path}",
            params=params,
            timeout_seconds=self.timeout_seconds,
            session=self.session,
        )
        if isinstance(payload, dict) and payload.get("success") is False:
            raise ProviderError("UPSTREAM", str(payload.get("message") or "Catalog reported a failure."))
        return SignalledResponse(data=payload, signal=signal)

    def list_services(self, filters: dict[str, Any] | None = None) -> SignalledResponse[Any]:
        return self._get("/servicios", params=dict(filters or {}))

    def get_service(self, slug: str) -> SignalledResponse[Any]:
        clean = slug.strip()
        if not clean:
            raise ValueError("Service slug must not be empty.")
        response = self._get(f"/servicios/{clean}")
        body = response.data
        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise ProviderError("NOT_FOUND", f"Service '{clean}' not found.", 404)
        return SignalledResponse(data=data, signal=response.signal)

    def featured_services(self) -> SignalledResponse[Any]:
        response = self._get("/servicios", params={"destacado": "true", "visibleEnWeb": "true", "activo": "true"})
        return SignalledResponse(data=service_items(response.data), signal=response.signal)

    def services_by_category(self, category: str) -> SignalledResponse[Any]:
        response = self._get("/servicios", params={"categoria": category, "visibleEnWeb": "true", "activo": "true"})
        return SignalledResponse(data=service_items(response.data), signal=response.signal)

    def search(self, query: str) -> SignalledResponse[Any]:
        response = self._get("/servicios", params={"search": query.strip()})
        return SignalledResponse(data=service_items(response.data), signal=response.signal)

    def as_fetch(self, method: Callable[..., SignalledResponse[Any]], *args: Any) -> Callable[[], Awaitable[Any]]:
        """Adapt a blocking client call into the async fetch an orchestrator expects."""

        async def fetch() -> SignalledResponse[Any]:
            return await asyncio.to_thread(method, *args)

        return fetch


def service_items(body: Any) -> list[Any]:
    if isinstance(body, dict):
        data = body.get("data")
        return list(data) if isinstance(data, list) else []
    if isinstance(body, list):
        return body
    return []
