"""Injectable key/value cache.

Pipelines receive a cache instance through their context instead of
reaching for module globals. Block timestamps use a fresh cache per cycle;
market enrichment and the dashboard's last-known-good envelopes use a
longer-lived one.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple


class Cache(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        ...

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value; ttl in seconds, None means no expiry."""
        ...

    def get_or_load(self, key: str, loader: Callable[[], Any],
                    ttl: Optional[float] = None) -> Any:
        value = self.get(key)
        if value is None:
            value = loader()
            if value is not None:
                self.put(key, value, ttl)
        return value


class MemoryCache(Cache):
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        with self._lock:
            now = self._clock()
            return sum(
                1 for _, expires_at in self._entries.values()
                if expires_at is None or now < expires_at
            )
