"""On-Chain Agent: OrderFilled fills from the Polymarket exchange on Polygon.

Pipeline:
1. Anchor a window of the last ``block_window`` blocks
2. Pull OrderFilled logs for the exchange contract in that window
3. Build the token id -> market index from Gamma (best effort)
4. Decode each log, resolving its market and block timestamp
5. Keep fills at or above the on-chain threshold, rank, cap, summarize

Block timestamps are memoized in a cache that lives for one cycle only.
A log that fails to decode is counted and skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from db.models import RankedResult, TradeRecord
from pipeline.aggregate import build_result
from pipeline.cache import MemoryCache
from pipeline.classify import filter_whales
from pipeline.decoder import AssetIndex, decode_trade
from pipeline.errors import DecodeError, SourceError
from pipeline.rank import RankMode

from .base import BaseAgent

logger = logging.getLogger(__name__)

NOTE = "Real on-chain trades from Polygon blockchain. Verify any trade using the polygonScanUrl."


class OnChainAgent(BaseAgent):
    artifact_name = "onchain-trades.json"

    def __init__(self, config: Any = None) -> None:
        super().__init__(name="onchain", config=config)

    def _asset_index(self, context: Dict[str, Any]) -> AssetIndex:
        """Market metadata is enrichment only; fills survive without it."""
        limit = context["config"].polygon.market_limit
        try:
            markets = context["polymarket"].get_gamma_markets(limit=limit, active=None)
        except SourceError as exc:
            logger.warning("Market lookup unavailable, fills stay unresolved: %s", exc)
            return AssetIndex()
        index = AssetIndex.from_markets([m for m in markets if isinstance(m, dict)])
        logger.info("Mapped %d token ids to markets", len(index))
        return index

    def compute(self, context: Dict[str, Any]) -> RankedResult:
        config = context["config"]
        chain = config.polygon
        rpc = context["polygon"]
        block_cache = context.get("block_cache")
        if block_cache is None:
            block_cache = MemoryCache()

        to_block = rpc.block_number()
        from_block = max(0, to_block - chain.block_window)
        logs = rpc.get_logs(from_block, to_block,
                            address=chain.exchange_address,
                            topics=[chain.order_filled_topic])
        logger.info("Found %d fills in blocks %d-%d", len(logs), from_block, to_block)

        index = self._asset_index(context)

        def block_timestamp(number: int) -> datetime:
            return block_cache.get_or_load(
                f"block:{number}", lambda: rpc.get_block_timestamp(number))

        trades: List[TradeRecord] = []
        failures = 0
        for log in logs[:chain.max_logs]:
            try:
                trades.append(decode_trade(
                    log, index, block_timestamp,
                    topic=chain.order_filled_topic,
                    decimals=chain.collateral_decimals,
                ))
            except (DecodeError, SourceError) as exc:
                failures += 1
                tx = log.get("transactionHash", "?") if isinstance(log, dict) else "?"
                logger.warning("Skipping log %s: %s", tx, exc)

        whales = filter_whales(trades, config.thresholds.onchain)
        return build_result(
            whales, kind="trades", mode=RankMode.SIZE,
            limit=config.caps.onchain,
            note=NOTE,
            failures=failures,
            metadata={
                "blockRange": {
                    "from": from_block,
                    "to": to_block,
                    "blocksScanned": to_block - from_block,
                },
            },
        )
