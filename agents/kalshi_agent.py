"""Kalshi Agent: individual Kalshi trades over the last day.

Pipeline:
1. Load one large page of open markets
2. Keep the top ``max_markets`` by 24h volume (volume > 0 only)
3. Page through each market's trades since ``lookback_hours`` ago
   (cursor pagination, at most ``max_pages`` pages per market)
4. Notional = contracts x taker-side dollar price
5. Keep trades at or above the Kalshi threshold, rank, cap, summarize
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from db.models import RankedResult, TradeRecord
from pipeline.aggregate import build_result
from pipeline.classify import filter_whales
from pipeline.normalize import normalize_batch, normalize_kalshi_trade, to_float
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)

NOTE = "Real individual trades from Kalshi API. Each trade shows exact dollar amount and side (yes/no)."


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def top_markets_by_volume(markets: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    """Markets with 24h volume, busiest first; ties keep API order."""
    active = [
        m for m in markets
        if isinstance(m, dict) and m.get("ticker") and to_float(m.get("volume_24h")) > 0
    ]
    ordered = sorted(enumerate(active),
                     key=lambda pair: (-to_float(pair[1].get("volume_24h")), pair[0]))
    return [m for _, m in ordered[:limit]]


class KalshiAgent(BaseAgent):
    artifact_name = "kalshi-whale-trades.json"

    def __init__(self, config: Any = None) -> None:
        super().__init__(name="kalshi", config=config)

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        kc = config.kalshi
        client = context["kalshi"]

        now = datetime.now(timezone.utc)
        since = now - timedelta(hours=kc.lookback_hours)
        min_ts = int(since.timestamp())

        markets = client.get_open_markets(limit=kc.market_limit)
        selected = top_markets_by_volume(markets, kc.max_markets)
        logger.info("Using top %d of %d Kalshi markets by 24h volume",
                    len(selected), len(markets))

        record_failures = 0

        def fetch(market: Dict[str, Any]) -> List[TradeRecord]:
            nonlocal record_failures
            raws = client.iter_trades(market["ticker"], min_ts=min_ts,
                                      max_pages=kc.max_pages).items()
            batch = normalize_batch(raws, normalize_kalshi_trade, market)
            record_failures += batch.failures
            return batch.records

        # The client spaces its own calls by rate_limit_delay.
        outcome = self._collect_batch(selected, fetch, label=lambda m: m["ticker"])
        trades = [t for market_trades in outcome.results for t in market_trades]
        whales = filter_whales(trades, config.thresholds.kalshi)
        logger.info("Kalshi: %d trades, %d over $%.0f",
                    len(trades), len(whales), config.thresholds.kalshi)

        return build_result(
            whales, kind="trades", mode=RankMode.SIZE,
            limit=config.caps.kalshi,
            note=NOTE,
            failures=outcome.failures + record_failures,
            metadata={"timeRange": {"from": _iso(since), "to": _iso(now)}},
            last_updated=now,
        )
