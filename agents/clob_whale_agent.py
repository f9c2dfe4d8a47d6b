"""CLOB Whale Agent: large individual Polymarket trades.

Pipeline:
1. Discover active markets from Gamma (tag filter, single page)
2. Fan out over the first ``max_markets`` of them, fetching the last
   ``lookback_hours`` of CLOB trades per market
3. Normalize with the market question joined as the title
4. Keep trades at or above the CLOB whale threshold, drop sports bets
5. Rank by dollar value, cap, summarize

A failing market is counted and skipped; only a failed market discovery
aborts the cycle.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List

from db.models import RankedResult, TradeRecord
from pipeline.aggregate import build_result
from pipeline.classify import exclude_sports_bets, filter_whales
from pipeline.normalize import normalize_batch, normalize_clob_trade
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)

NOTE = "Individual Polymarket CLOB trades over the last {}h, ${:,.0f} and up."


def _condition_id(market: Dict[str, Any]) -> str:
    return str(market.get("condition_id") or market.get("conditionId") or "")


class ClobWhaleAgent(BaseAgent):
    artifact_name = "whale-clob-trades.json"

    def __init__(self, config: Any = None) -> None:
        super().__init__(name="clob_whales", config=config)

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        pm = config.polymarket
        client = context["polymarket"]

        markets = client.get_gamma_markets(
            limit=pm.market_limit, tag=pm.market_tag,
        )
        markets = [m for m in markets if isinstance(m, dict) and _condition_id(m)]
        selected = markets[:pm.max_markets]
        since = int(time.time()) - pm.lookback_hours * 3600
        logger.info("Scanning CLOB trades for %d of %d markets",
                    len(selected), len(markets))

        record_failures = 0

        def fetch(market: Dict[str, Any]) -> List[TradeRecord]:
            nonlocal record_failures
            raws = client.get_clob_trades(_condition_id(market), start_ts=since)
            batch = normalize_batch(raws, normalize_clob_trade, market)
            record_failures += batch.failures
            return batch.records

        outcome = self._collect_batch(selected, fetch, label=_condition_id)
        trades = [t for market_trades in outcome.results for t in market_trades]

        whales = exclude_sports_bets(filter_whales(trades, config.thresholds.clob))
        logger.info("CLOB: %d trades, %d whales", len(trades), len(whales))

        return build_result(
            whales, kind="trades", mode=RankMode.SIZE,
            limit=config.caps.whale_trades,
            note=NOTE.format(pm.lookback_hours, config.thresholds.clob),
            failures=outcome.failures + record_failures,
            metadata={"marketsScanned": len(selected)},
        )
