"""Market Panel Agent: notable markets from stored snapshots.

Pipeline:
1. Read all snapshots, most recent first
2. Keep only the latest snapshot per market
3. Apply the panel filter (volume floor, plus the 1h move for ``volatile``)
4. Rank by the filter's key and cap at the panel size
5. Enrich the survivors with slug and image from Gamma

Enrichment is cached across cycles and best effort: a market whose lookup
fails is still shown, with no link or image.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from db.models import MarketSnapshot, RankedResult
from pipeline.aggregate import build_result
from pipeline.cache import MemoryCache
from pipeline.classify import filter_markets, latest_per_market
from pipeline.errors import SourceError
from pipeline.normalize import normalize_batch, normalize_stored_snapshot
from pipeline.rank import RankMode, rank_and_cap

from .base import BaseAgent

logger = logging.getLogger(__name__)

PANEL_MODES = (RankMode.VOLUME, RankMode.COMPETITIVE, RankMode.VOLATILE)


def parse_panel_mode(value: Optional[str]) -> RankMode:
    """Unknown filters fall back to volume."""
    mode = RankMode.parse(value, RankMode.VOLUME)
    return mode if mode in PANEL_MODES else RankMode.VOLUME


class MarketPanelAgent(BaseAgent):
    def __init__(self, config: Any = None) -> None:
        super().__init__(name="market_panel", config=config)

    def artifact_path(self, context: Dict[str, Any]) -> Optional[Path]:
        return Path(context["config"].output.public_dir) / "markets.json"

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        return self.build(context)

    def build(self, context: Dict[str, Any], mode: RankMode = RankMode.VOLUME,
              min_volume: Optional[float] = None) -> RankedResult:
        config = context["config"]
        thresholds = config.thresholds
        if min_volume is None:
            min_volume = thresholds.min_market_volume

        rows = context["queries"].get_market_snapshots()
        batch = normalize_batch(rows, normalize_stored_snapshot)
        latest = latest_per_market(batch.records)
        kept = filter_markets(
            latest, mode.value,
            min_volume=min_volume,
            competitive_min_volume=thresholds.competitive_min_volume,
            volatility=thresholds.volatility,
        )
        logger.info("Market panel (%s): %d snapshots, %d markets, %d pass filter",
                    mode.value, len(batch.records), len(latest), len(kept))

        top = rank_and_cap(kept, mode, config.caps.market_panel)
        enriched = [self._enrich(context, s) for s in top]

        return build_result(
            enriched, kind="markets", mode=mode,
            note=f"Latest snapshot per market, filtered by {mode.value}.",
            failures=batch.failures,
            metadata={"filter": mode.value, "minVolume": min_volume},
        )

    def _enrich(self, context: Dict[str, Any], snapshot: MarketSnapshot) -> MarketSnapshot:
        cache = context.get("cache")
        if cache is None:
            cache = context.setdefault("cache", MemoryCache())
        client = context["polymarket"]
        ttl = context["config"].polymarket.enrichment_ttl

        def load() -> Optional[Dict[str, str]]:
            try:
                market = client.get_gamma_market(snapshot.market_id)
            except SourceError as exc:
                logger.warning("No slug/image for market %s: %s", snapshot.market_id, exc)
                return None
            return {
                "slug": str(market.get("slug") or ""),
                "image": str(market.get("image") or market.get("icon") or ""),
            }

        extra = cache.get_or_load(f"gamma-market:{snapshot.market_id}", load, ttl=ttl)
        if not extra:
            return snapshot
        return dataclasses.replace(snapshot, details={**snapshot.details, **extra})
