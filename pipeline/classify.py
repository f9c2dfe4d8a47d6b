"""Threshold classification, content filtering and snapshot deduplication."""

from __future__ import annotations

from typing import Dict, Iterable, List

from db.models import MarketSnapshot, TradeRecord
from .market_math import competitiveness

SPORTS_MARKER = "VS."


def is_whale(record: TradeRecord, threshold: float) -> bool:
    return record.dollar_value >= threshold


def is_volatile(snapshot: MarketSnapshot, threshold: float) -> bool:
    return abs(snapshot.price_change_1h) >= threshold


def is_sports_bet(title: str) -> bool:
    """Head-to-head sports bets are titled "TEAM A VS. TEAM B"."""
    return SPORTS_MARKER in (title or "").upper()


def filter_whales(records: Iterable[TradeRecord], threshold: float) -> List[TradeRecord]:
    return [r for r in records if is_whale(r, threshold)]


def exclude_sports_bets(records: Iterable[TradeRecord]) -> List[TradeRecord]:
    return [r for r in records if not is_sports_bet(r.market_title)]


def has_activity(snapshot: MarketSnapshot, min_volume: float,
                 volatility: float) -> bool:
    """High 24h volume or a significant 1h/24h move."""
    change_24h = abs(float(snapshot.details.get("priceChange24hr") or 0.0))
    return (
        snapshot.volume_24h >= min_volume
        or abs(snapshot.price_change_1h) >= volatility
        or change_24h >= volatility
    )


def filter_markets(snapshots: Iterable[MarketSnapshot], mode: str,
                   min_volume: float, competitive_min_volume: float,
                   volatility: float) -> List[MarketSnapshot]:
    """Base filters of the market panel.

    Every mode requires a volume floor (a lower one for ``competitive``);
    ``volatile`` additionally requires the 1h move threshold.
    """
    floor = competitive_min_volume if mode == "competitive" else min_volume
    kept = []
    for snapshot in snapshots:
        if snapshot.volume_24h < floor:
            continue
        if mode == "volatile" and not is_volatile(snapshot, volatility):
            continue
        kept.append(snapshot)
    return kept


def competitiveness_key(snapshot: MarketSnapshot) -> float:
    return competitiveness(snapshot.yes_price)


def latest_per_market(snapshots: Iterable[MarketSnapshot]) -> List[MarketSnapshot]:
    """Keep only the most recent snapshot of each market.

    Older snapshots are dropped whole, never merged. On equal timestamps the
    first occurrence wins (upstream lists newest first). Output keeps
    first-seen market order.
    """
    latest: Dict[str, MarketSnapshot] = {}
    for snapshot in snapshots:
        current = latest.get(snapshot.market_id)
        if current is None or snapshot.observed_at > current.observed_at:
            latest[snapshot.market_id] = snapshot
    return list(latest.values())
