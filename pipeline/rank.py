"""Ranking modes with a total order.

Every mode sorts by its key and falls back to the original fetch position,
so identical input always produces identical output. Caps are applied only
after the full ranking.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from db.models import MarketSnapshot, Record, TradeRecord
from .classify import competitiveness_key


class RankMode(Enum):
    RECENCY = "recency"
    SIZE = "size"
    IMPACT = "impact"
    VOLUME = "volume"
    COMPETITIVE = "competitive"
    VOLATILE = "volatile"

    @classmethod
    def parse(cls, value: Optional[str], default: RankMode) -> RankMode:
        if not value:
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            return default


# Keys are ascending; descending modes negate.
_TRADE_KEYS: Dict[RankMode, Callable[[TradeRecord], float]] = {
    RankMode.RECENCY: lambda t: -t.timestamp.timestamp(),
    RankMode.SIZE: lambda t: -t.dollar_value,
    # Low implied probability first: contrarian, high-payoff bets.
    RankMode.IMPACT: lambda t: t.price,
}

_MARKET_KEYS: Dict[RankMode, Callable[[MarketSnapshot], float]] = {
    RankMode.RECENCY: lambda m: -m.observed_at.timestamp(),
    RankMode.VOLUME: lambda m: -m.volume_24h,
    RankMode.COMPETITIVE: competitiveness_key,
    RankMode.VOLATILE: lambda m: -abs(m.price_change_1h),
}


def _key_for(item: Record, mode: RankMode) -> Callable[..., float]:
    table = _TRADE_KEYS if isinstance(item, TradeRecord) else _MARKET_KEYS
    try:
        return table[mode]
    except KeyError:
        raise ValueError(
            f"Rank mode '{mode.value}' does not apply to {type(item).__name__}"
        ) from None


def rank(items: Sequence[Record], mode: RankMode) -> List[Record]:
    if not items:
        return []
    key = _key_for(items[0], mode)
    indexed: List[Tuple[int, Record]] = list(enumerate(items))
    indexed.sort(key=lambda pair: (key(pair[1]), pair[0]))
    return [item for _, item in indexed]


def rank_and_cap(items: Sequence[Record], mode: RankMode,
                 limit: Optional[int] = None) -> List[Record]:
    ranked = rank(items, mode)
    if limit is not None and limit >= 0:
        return ranked[:limit]
    return ranked
