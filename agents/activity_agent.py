"""Whale Activity Agent: market-level activity from Gamma.

Gamma does not expose individual fills for every market, so this view
treats a market's 24h volume as one activity record. A market qualifies
with 24h volume over the activity threshold or a price move of at least
the volatility threshold in the last hour or day.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from db.models import RankedResult
from pipeline.aggregate import build_result
from pipeline.classify import has_activity
from pipeline.normalize import market_activity, normalize_batch, normalize_gamma_market
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)

NOTE = (
    "Data shows markets with high 24hr volume (>${:,.0f}) or significant price "
    "changes (>{:.0%}). Use the marketUrl to verify trades on Polymarket. "
    "This represents market-level activity, not individual trades."
)


class WhaleActivityAgent(BaseAgent):
    artifact_name = "whale-trades.json"

    def __init__(self, config: Any = None) -> None:
        super().__init__(name="whale_activity", config=config)

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        thresholds = config.thresholds
        observed_at = datetime.now(timezone.utc)

        raws = context["polymarket"].get_gamma_markets(
            limit=config.polymarket.market_limit, tag=config.polymarket.market_tag,
        )
        batch = normalize_batch(raws, normalize_gamma_market, observed_at)
        active = [
            s for s in batch.records
            if has_activity(s, thresholds.activity_volume, thresholds.volatility)
        ]
        logger.info("Gamma activity: %d of %d markets qualify",
                    len(active), len(batch.records))

        return build_result(
            [market_activity(s) for s in active],
            kind="trades", mode=RankMode.SIZE,
            limit=config.caps.activity,
            note=NOTE.format(thresholds.activity_volume, thresholds.volatility),
            largest_key="largestActivity",
            failures=batch.failures,
            last_updated=observed_at,
        )
