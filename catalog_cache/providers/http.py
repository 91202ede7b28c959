"""HTTP utilities and normalized catalog API errors."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

from catalog_cache.cache.signals import UpstreamSignal

ProviderErrorCode = Literal["AUTH", "NOT_FOUND", "RATE_LIMIT", "UPSTREAM", "NETWORK", "BAD_RESPONSE"]
TRANSIENT_CODES = {408, 425, 429, 500, 502, 503, 504}

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=10, pool_maxsize=20))
_SESSION.mount("http://", HTTPAdapter(pool_connections=10, pool_maxsize=20))


@dataclass
class ProviderError(Exception):
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def _backoff(attempt: int) -> None:
    time.sleep(0.25 * (2 ** (attempt - 1)))


def fetch_json(
    url: str,
    params: dict[str, Any] | None = None,
    timeout_seconds: float = 15.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 3,
    session: requests.Session | None = None,
) -> tuple[Any, UpstreamSignal]:
    """Fetch JSON with uniform network/status error mapping and the response's cache signal."""
    http = session or _SESSION
    attempts = max(1, max_retries)
    last_error: ProviderError | None = None
    for attempt in range(1, attempts + 1):
        try:
            response = http.get(url, params=params, timeout=timeout_seconds, headers=headers)
        except requests.RequestException as error:
            mapped = ProviderError("NETWORK", "Catalog request failed due to network error.")
            last_error = mapped
            if attempt < attempts:
                _backoff(attempt)
                continue
            raise mapped from error

        raw = response.text or ""
        parsed: Any = {}
        if raw:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as error:
                mapped = ProviderError("BAD_RESPONSE", "Catalog returned non-JSON content.", response.status_code)
                last_error = mapped
                if response.status_code in TRANSIENT_CODES and attempt < attempts:
                    _backoff(attempt)
                    continue
                raise mapped from error

        if not response.ok:
            mapped = ProviderError(
                map_status_to_code(response.status_code),
                f"Catalog request failed with status {response.status_code}.",
                response.status_code,
            )
            last_error = mapped
            if response.status_code in TRANSIENT_CODES and attempt < attempts:
                _backoff(attempt)
                continue
            raise mapped

        return parsed, UpstreamSignal.from_headers(response.headers)

    if last_error:
        raise last_error
    raise ProviderError("UPSTREAM", "Catalog request failed.")
