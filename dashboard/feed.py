"""Envelope feed for the dashboard, with last-known-good fallback.

The loader pulls an envelope either over HTTP (``base_url``) or straight
from the artifact directory. A successful pull is remembered in the
injected cache. When a later pull fails, the remembered copy is served
and the connection is reported as WEAK; with nothing remembered the
result is an empty envelope and ERROR. An empty but successful envelope
is STRONG: there is simply no data yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from clients.base import JsonApiClient
from pipeline.cache import Cache, MemoryCache
from pipeline.errors import SourceError, SourceMalformedResponse, SourceUnavailable
from pipeline.sink import empty_envelope, read_artifact

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    STRONG = "strong"
    WEAK = "weak"
    ERROR = "error"


@dataclass
class FeedResult:
    envelope: Dict[str, Any]
    state: ConnectionState
    error: Optional[str] = None

    @property
    def kind(self) -> str:
        return "markets" if "markets" in self.envelope else "trades"

    @property
    def records(self) -> List[Dict[str, Any]]:
        return list(self.envelope.get(self.kind) or [])

    @property
    def summary(self) -> Dict[str, Any]:
        return self.envelope.get("summary") or {}


class FeedLoader(JsonApiClient):
    source = "feed"

    def __init__(self, base_url: str = "", artifact_dir: Optional[Path] = None,
                 cache: Optional[Cache] = None, timeout: float = 10) -> None:
        super().__init__(timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.artifact_dir = Path(artifact_dir) if artifact_dir else None
        self.cache = cache if cache is not None else MemoryCache()

    def _fetch(self, name: str) -> Dict[str, Any]:
        if self.base_url:
            payload = self._get(f"{self.base_url}/{name}")
        elif self.artifact_dir is not None:
            payload = read_artifact(self.artifact_dir / name)
            if payload is None:
                raise SourceUnavailable(self.source, f"{name}: no artifact yet")
        else:
            raise SourceUnavailable(self.source, "no feed URL or artifact directory")

        payload = self._expect(payload, dict, name)
        if "error" in payload:
            raise SourceMalformedResponse(
                self.source, f"{name}: {payload.get('error')} {payload.get('details', '')}".strip())
        return payload

    def load(self, name: str) -> FeedResult:
        key = f"feed:{name}"
        try:
            envelope = self._fetch(name)
        except SourceError as exc:
            cached = self.cache.get(key)
            if cached is not None:
                logger.warning("Feed %s failed, serving last known good: %s", name, exc)
                return FeedResult(cached, ConnectionState.WEAK, str(exc))
            logger.error("Feed %s failed with nothing cached: %s", name, exc)
            return FeedResult(empty_envelope(), ConnectionState.ERROR, str(exc))

        self.cache.put(key, envelope)
        return FeedResult(envelope, ConnectionState.STRONG)
