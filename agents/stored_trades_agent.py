"""Stored Trades Agent: whale trades from the hosted trades table.

Pipeline:
1. Read every row of ``trades`` (largest notional first)
2. Normalize, discarding rows without an id or market id
3. Keep trades at or above the stored-trades whale threshold
4. Drop head-to-head sports bets ("TEAM A VS. TEAM B")
5. Rank by dollar value and summarize into public/trades.json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from db.models import RankedResult
from pipeline.aggregate import build_result
from pipeline.classify import exclude_sports_bets, filter_whales
from pipeline.normalize import normalize_batch, normalize_stored_trade
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)

NOTE = "Real whale trades from Polymarket via the trades database. All trades >= ${:,.0f}."


class StoredTradesAgent(BaseAgent):
    def __init__(self, config: Any = None) -> None:
        super().__init__(name="stored_trades", config=config)

    def artifact_path(self, context: Dict[str, Any]) -> Optional[Path]:
        return Path(context["config"].output.public_dir) / "trades.json"

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        threshold = config.thresholds.stored_trades

        rows = context["queries"].get_trades()
        batch = normalize_batch(rows, normalize_stored_trade)

        whales = filter_whales(batch.records, threshold)
        kept = exclude_sports_bets(whales)
        logger.info(
            "Stored trades: %d rows, %d whales, filtered %d sports bets",
            len(rows), len(whales), len(whales) - len(kept),
        )

        return build_result(
            kept, kind="trades", mode=RankMode.SIZE,
            note=NOTE.format(threshold),
            failures=batch.failures,
        )
