"""Top Markets Agent: the busiest open Polymarket markets by 24h volume.

Open markets are paged from Gamma up to ``discovery_limit``, then ranked by
24h volume and capped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from db.models import RankedResult
from pipeline.aggregate import build_result
from pipeline.normalize import normalize_batch, normalize_gamma_market
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)


class TopMarketsAgent(BaseAgent):
    artifact_name = "top-markets.json"

    def __init__(self, config: Any = None) -> None:
        super().__init__(name="top_markets", config=config)

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        observed_at = datetime.now(timezone.utc)

        pm = config.polymarket
        page_size = max(1, min(pm.discovery_page_size, pm.discovery_limit))
        pages = context["polymarket"].iter_gamma_markets(
            page_size=page_size,
            max_pages=-(-pm.discovery_limit // page_size),
            active=None,
        )
        raws = pages.items()[:pm.discovery_limit]
        batch = normalize_batch(raws, normalize_gamma_market, observed_at)
        traded = [s for s in batch.records if s.volume_24h > 0]
        logger.info("Top markets: %d of %d open markets traded today",
                    len(traded), len(batch.records))

        return build_result(
            traded, kind="markets", mode=RankMode.VOLUME,
            limit=config.caps.top_markets,
            note="Open Polymarket markets ranked by 24hr volume.",
            failures=batch.failures,
            last_updated=observed_at,
        )
