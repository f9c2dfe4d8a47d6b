"""Shared HTTP plumbing for the upstream clients.

Every request goes through ``_request`` which enforces the per-client
minimum delay between calls and maps transport failures onto the source
error taxonomy:

- HTTP 429                           -> SourceRateLimited
- connection errors, timeouts, 4xx/5xx -> SourceUnavailable
- body is not JSON                   -> SourceMalformedResponse
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import requests

from pipeline.errors import (
    SourceMalformedResponse, SourceRateLimited, SourceUnavailable,
)

DEFAULT_TIMEOUT = 30


class JsonApiClient:
    source = "http"

    def __init__(self, rate_limit_delay: float = 0.0,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self.rate_limit_delay = rate_limit_delay
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "WhaleWatch/1.0",
        })
        self._last_request_time = 0.0

    def _rate_limit(self) -> None:
        """Enforce minimum delay between API calls."""
        if self.rate_limit_delay <= 0:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request_time = time.monotonic()

    def _request(self, method: str, url: str,
                 params: Optional[Dict[str, Any]] = None,
                 json_body: Optional[Dict[str, Any]] = None) -> Any:
        self._rate_limit()
        try:
            resp = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SourceUnavailable(self.source, f"{method} {url}: {exc}") from exc

        if resp.status_code == 429:
            raise SourceRateLimited(self.source, f"{method} {url}: rate limited",
                                    status_code=429)
        if resp.status_code >= 400:
            raise SourceUnavailable(
                self.source, f"{method} {url}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise SourceMalformedResponse(
                self.source, f"{method} {url}: body is not JSON",
            ) from exc

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", url, params=params)

    def _expect(self, payload: Any, kind: type, what: str) -> Any:
        if not isinstance(payload, kind):
            raise SourceMalformedResponse(
                self.source, f"{what}: expected {kind.__name__}, "
                             f"got {type(payload).__name__}",
            )
        return payload
