"""Polymarket API client: Gamma (market metadata) + CLOB (trades).

Gamma API: https://gamma-api.polymarket.com (no auth required)
  - /markets: paginated market discovery (offset/limit)
  - /markets/{id}: single market, used for slug/image enrichment

CLOB API: https://clob.polymarket.com (no auth for read operations)
  - /trades: trade history for a market since a timestamp
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from config import PolymarketConfig

from .base import JsonApiClient
from .pagination import OffsetPages


class PolymarketClient(JsonApiClient):
    source = "polymarket"

    def __init__(self, config: PolymarketConfig) -> None:
        super().__init__(rate_limit_delay=config.rate_limit_delay)
        self.config = config
        self.gamma_url = config.gamma_url
        self.clob_url = config.clob_url

    # ── Gamma API ────────────────────────────────────────────

    def get_gamma_markets(self, limit: int = 100,
                          offset: int = 0,
                          active: Optional[bool] = True,
                          closed: bool = False,
                          tag: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch one page of markets from Gamma."""
        params: Dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "closed": str(closed).lower(),
        }
        if active is not None:
            params["active"] = str(active).lower()
        if tag:
            params["tag"] = tag
        payload = self._get(f"{self.gamma_url}/markets", params=params)
        return self._expect(payload, list, "gamma /markets")

    def iter_gamma_markets(self, page_size: int = 100, max_pages: int = 10,
                           **filters: Any) -> OffsetPages:
        """Offset-paginated markets; restartable and capped at ``max_pages``."""
        return OffsetPages(
            lambda offset, limit: self.get_gamma_markets(
                limit=limit, offset=offset, **filters),
            page_size=page_size,
            max_pages=max_pages,
        )

    def get_gamma_market(self, market_id: str) -> Dict[str, Any]:
        """Fetch a single market by id from Gamma."""
        payload = self._get(f"{self.gamma_url}/markets/{market_id}")
        return self._expect(payload, dict, "gamma /markets/{id}")

    # ── CLOB API ─────────────────────────────────────────────

    def get_clob_trades(self, market: str,
                        start_ts: Optional[int] = None) -> List[Dict[str, Any]]:
        """Trades for one market (condition id), optionally since ``start_ts``."""
        params: Dict[str, Any] = {"market": market}
        if start_ts is not None:
            params["start_ts"] = start_ts
        payload = self._get(f"{self.clob_url}/trades", params=params)
        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]
        return self._expect(payload, list, "clob /trades")

    def health_check(self) -> bool:
        """Test connectivity to the Gamma API."""
        try:
            self.get_gamma_markets(limit=1)
            return True
        except Exception:
            return False
