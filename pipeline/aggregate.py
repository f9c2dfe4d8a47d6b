"""Summary statistics over the final ranked-and-capped set."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from db.models import (
    MarketSnapshot, MarketSummary, RankedResult, Record, TradeRecord,
    TradeSummary, UNKNOWN_TRADER,
)
from .rank import RankMode, rank_and_cap


def summarize_trades(records: Sequence[TradeRecord]) -> TradeSummary:
    if not records:
        return TradeSummary()
    total = sum(r.dollar_value for r in records)
    # Explicit scan: the display order may not be size-based.
    largest = records[0]
    for record in records[1:]:
        if record.dollar_value > largest.dollar_value:
            largest = record
    traders = {
        r.trader_identifier for r in records
        if r.trader_identifier and r.trader_identifier != UNKNOWN_TRADER
    }
    return TradeSummary(
        total_volume=total,
        average_trade_size=total / len(records),
        unique_markets=len({r.market_id for r in records}),
        unique_traders=len(traders),
        largest=largest,
    )


def summarize_markets(snapshots: Sequence[MarketSnapshot]) -> MarketSummary:
    if not snapshots:
        return MarketSummary()
    total = sum(s.volume_24h for s in snapshots)
    return MarketSummary(
        total_volume=total,
        average_volume=total / len(snapshots),
        unique_markets=len({s.market_id for s in snapshots}),
        top=snapshots[0],
    )


def build_result(items: Sequence[Record], kind: str, mode: RankMode,
                 limit: Optional[int] = None, note: str = "",
                 largest_key: Optional[str] = None, failures: int = 0,
                 metadata: Optional[Dict[str, Any]] = None,
                 last_updated: Optional[datetime] = None) -> RankedResult:
    """Rank, cap, then summarize exactly what will be emitted."""
    final = rank_and_cap(items, mode, limit)
    if kind == "markets":
        summary = summarize_markets(final)
        largest_key = largest_key or "topMarket"
    else:
        summary = summarize_trades(final)
        largest_key = largest_key or "largestTrade"
    return RankedResult(
        items=tuple(final),
        summary=summary,
        kind=kind,
        mode=mode.value,
        last_updated=last_updated or datetime.now(timezone.utc),
        note=note,
        largest_key=largest_key,
        failures=failures,
        metadata=tuple((metadata or {}).items()),
    )
