"""Canonical records shared by every source pipeline.

Prices are fractions of 1 everywhere inside the pipeline. Percentages only
appear in the presentation dicts produced by ``to_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pipeline.market_math import to_percent

UNKNOWN_MARKET = "Unknown Market"
UNKNOWN_TRADER = "UNKNOWN"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: Any) -> Side:
        if isinstance(value, str) and value.strip().upper() == "SELL":
            return cls.SELL
        return cls.BUY


class SourceSystem(Enum):
    STORED_TRADES = "stored_trades"
    STORED_SNAPSHOTS = "stored_snapshots"
    GAMMA = "gamma"
    CLOB = "clob"
    ONCHAIN = "onchain"
    KALSHI = "kalshi"
    GAMMA_ACTIVITY = "gamma_activity"


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class TradeRecord:
    """A single trade, whatever platform it came from."""
    id: str
    market_id: str
    market_title: str = UNKNOWN_MARKET
    side: Side = Side.BUY
    outcome: str = "YES"
    price: float = 0.0                  # implied probability, 0..1
    size_units: float = 0.0             # contracts / shares
    dollar_value: float = 0.0           # notional in USD, primary sort key
    timestamp: datetime = EPOCH
    trader_identifier: str = UNKNOWN_TRADER
    source_system: SourceSystem = SourceSystem.CLOB
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.market_title:
            self.market_title = UNKNOWN_MARKET
        if self.dollar_value < 0:
            self.dollar_value = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "marketId": self.market_id,
            "market": self.market_title,
            "side": self.side.value,
            "outcome": self.outcome,
            "price": round(self.price, 4),
            "probability": to_percent(self.price),
            "size": round(self.size_units, 4),
            "dollarAmount": round(self.dollar_value, 2),
            "timestamp": _iso(self.timestamp),
            "trader": self.trader_identifier,
            "source": self.source_system.value,
        }
        for key, value in self.details.items():
            data.setdefault(key, value)
        return data


@dataclass
class MarketSnapshot:
    """Point-in-time aggregate state of one market."""
    market_id: str
    question: str = UNKNOWN_MARKET
    yes_price: float = 0.0
    no_price: float = 0.0
    volume_24h: float = 0.0
    price_change_1h: float = 0.0
    observed_at: datetime = EPOCH
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        slug = self.details.get("slug") or ""
        data = {
            "id": self.market_id,
            "title": self.question or UNKNOWN_MARKET,
            "yes_price": to_percent(self.yes_price),
            "no_price": to_percent(self.no_price),
            "volume": self.volume_24h,
            "price_change_1h": to_percent(self.price_change_1h),
            "last_updated": _iso(self.observed_at),
            "polymarket_url": f"https://polymarket.com/market/{slug}" if slug else "#",
            "image_url": self.details.get("image") or "",
        }
        for key, value in self.details.items():
            if key not in ("slug", "image"):
                data.setdefault(key, value)
        return data


Record = Union[TradeRecord, MarketSnapshot]


@dataclass(frozen=True)
class TradeSummary:
    total_volume: float = 0.0
    average_trade_size: float = 0.0
    unique_markets: int = 0
    unique_traders: int = 0
    largest: Optional[TradeRecord] = None


@dataclass(frozen=True)
class MarketSummary:
    total_volume: float = 0.0
    average_volume: float = 0.0
    unique_markets: int = 0
    top: Optional[MarketSnapshot] = None


@dataclass(frozen=True)
class RankedResult:
    """Ranked, capped and summarized output of one pipeline run.

    Built once per request or cycle, then serialized or written; never
    mutated.
    """
    items: Tuple[Record, ...]
    summary: Union[TradeSummary, MarketSummary]
    kind: str = "trades"                # envelope key: "trades" or "markets"
    mode: str = "size"
    last_updated: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc))
    note: str = ""
    largest_key: str = "largestTrade"   # summary key naming the head record
    failures: int = 0
    metadata: Tuple[Tuple[str, Any], ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)
