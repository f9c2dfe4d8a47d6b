"""Kalshi REST API client for public market data.

Markets and trades are readable without authentication. Calls are spaced
by ``rate_limit_delay`` to stay under the public rate limit.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from config import KalshiConfig

from .base import JsonApiClient
from .pagination import CursorPages


class KalshiClient(JsonApiClient):
    source = "kalshi"

    def __init__(self, config: KalshiConfig) -> None:
        super().__init__(rate_limit_delay=config.rate_limit_delay)
        self.config = config
        self.base_url = config.base_url

    def _call(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = self._get(f"{self.base_url}{path}", params=params)
        return self._expect(payload, dict, path)

    # ── Public API Methods ───────────────────────────────────

    def get_markets(self, limit: int = 200,
                    cursor: Optional[str] = None,
                    status: str = "open") -> Dict[str, Any]:
        """Fetch one page of markets."""
        params: Dict[str, Any] = {"limit": limit, "status": status}
        if cursor:
            params["cursor"] = cursor
        return self._call("/markets", params=params)

    def get_open_markets(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Single large page of open markets."""
        resp = self.get_markets(limit=limit or self.config.market_limit)
        markets = resp.get("markets") or []
        return [m for m in markets if isinstance(m, dict)]

    def get_trades(self, ticker: str,
                   min_ts: Optional[int] = None,
                   limit: int = 1000,
                   cursor: Optional[str] = None) -> Dict[str, Any]:
        """Fetch one page of trades for a market."""
        params: Dict[str, Any] = {"ticker": ticker, "limit": limit}
        if min_ts is not None:
            params["min_ts"] = min_ts
        if cursor:
            params["cursor"] = cursor
        return self._call("/markets/trades", params=params)

    def iter_trades(self, ticker: str, min_ts: Optional[int] = None,
                    max_pages: Optional[int] = None) -> CursorPages:
        """Cursor-paginated trades for ``ticker``, capped at ``max_pages``."""

        def fetch(cursor: Optional[str]):
            resp = self.get_trades(ticker, min_ts=min_ts,
                                   limit=self.config.page_limit, cursor=cursor)
            return resp.get("trades") or [], resp.get("cursor") or None

        return CursorPages(fetch, max_pages=max_pages or self.config.max_pages)

    def health_check(self) -> bool:
        """Test connectivity to the Kalshi API."""
        try:
            self._call("/exchange/status")
            return True
        except Exception:
            return False
