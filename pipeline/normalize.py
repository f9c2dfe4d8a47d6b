"""Per-source normalization into TradeRecord / MarketSnapshot.

Every upstream has its own loose JSON shape. Each ``normalize_*`` function
takes one raw record and returns a canonical record, or raises
MalformedRecord when a mandatory identifier is missing. Optional fields
never raise: missing or non-numeric numbers read as 0, titles fall back to
"Unknown Market", outcomes to "YES" and traders to "UNKNOWN".
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from db.models import (
    EPOCH, MarketSnapshot, Side, SourceSystem, TradeRecord,
    UNKNOWN_MARKET, UNKNOWN_TRADER,
)
from .errors import MalformedRecord
from .market_math import dollar_price_to_probability, implied_probability

logger = logging.getLogger(__name__)

POLYMARKET_EVENT_URL = "https://polymarket.com/event/{}"


# ── Field helpers ────────────────────────────────────────────

def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def parse_json_list(value: Any) -> List[Any]:
    """Gamma ships some list fields as JSON-encoded strings."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _parse_json_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def parse_instant(value: Any, default: datetime = EPOCH) -> datetime:
    """Accept epoch seconds, epoch milliseconds or ISO-8601 strings."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if value is None or isinstance(value, bool) or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if not math.isnan(number):
        if number > 1e12:
            number /= 1000.0
        try:
            return datetime.fromtimestamp(number, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _require(raw: Any, source: SourceSystem, *keys: str) -> str:
    if not isinstance(raw, dict):
        raise MalformedRecord(source.value, keys[0])
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return str(value)
    raise MalformedRecord(source.value, keys[0])


def _text(*candidates: Any, default: str = "") -> str:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return default


# ── Stored (database) source ─────────────────────────────────

def normalize_stored_trade(row: Dict[str, Any]) -> TradeRecord:
    """Row of the ``trades`` table.

    ``size`` holds the USDC notional of the trade, so it is authoritative
    for ``dollar_value``; share count is derived from it.
    """
    source = SourceSystem.STORED_TRADES
    trade_id = _require(row, source, "id")
    market_id = _require(row, source, "market_id")

    platform = _parse_json_dict(row.get("platform_data"))
    title = _text(platform.get("title"), row.get("market_question"),
                  default=UNKNOWN_MARKET)
    notional = to_float(row.get("size"))
    price = implied_probability(to_float(row.get("price")))

    return TradeRecord(
        id=trade_id,
        market_id=market_id,
        market_title=title,
        side=Side.parse(row.get("side")),
        outcome=_text(row.get("outcome"), default="YES"),
        price=price,
        size_units=notional / price if price > 0 else 0.0,
        dollar_value=notional,
        timestamp=parse_instant(row.get("timestamp") or row.get("created_at")),
        trader_identifier=_text(row.get("trader_wallet"), row.get("taker_address"),
                                default=UNKNOWN_TRADER),
        source_system=source,
    )


def normalize_stored_snapshot(row: Dict[str, Any]) -> MarketSnapshot:
    """Row of the ``market_snapshots`` table."""
    source = SourceSystem.STORED_SNAPSHOTS
    market_id = _require(row, source, "market_id")
    platform = _parse_json_dict(row.get("platform_data"))
    details: Dict[str, Any] = {}
    if row.get("event_id") not in (None, ""):
        details["event_id"] = row["event_id"]

    return MarketSnapshot(
        market_id=market_id,
        question=_text(row.get("market_question"), platform.get("title"),
                       default=UNKNOWN_MARKET),
        yes_price=implied_probability(to_float(row.get("yes_price"))),
        no_price=implied_probability(to_float(row.get("no_price"))),
        volume_24h=max(0.0, to_float(row.get("volume_24h"))),
        price_change_1h=to_float(row.get("price_change_1h")),
        observed_at=parse_instant(row.get("snapshot_time")),
        details=details,
    )


# ── Polymarket Gamma + CLOB ──────────────────────────────────

def normalize_gamma_market(raw: Dict[str, Any],
                           observed_at: Optional[datetime] = None) -> MarketSnapshot:
    source = SourceSystem.GAMMA
    market_id = _require(raw, source, "id", "conditionId")

    prices = [to_float(p) for p in parse_json_list(raw.get("outcomePrices"))]
    outcomes = [str(o) for o in parse_json_list(raw.get("outcomes"))] or ["Yes", "No"]
    if prices:
        yes_price = prices[0]
    else:
        yes_price = to_float(raw.get("lastTradePrice"))
    yes_price = implied_probability(yes_price)
    no_price = implied_probability(prices[1]) if len(prices) > 1 else 1.0 - yes_price

    slug = _text(raw.get("slug"))
    if observed_at is None:
        observed_at = parse_instant(raw.get("updatedAt"),
                                    default=datetime.now(timezone.utc))

    return MarketSnapshot(
        market_id=market_id,
        question=_text(raw.get("question"), default=UNKNOWN_MARKET),
        yes_price=yes_price,
        no_price=no_price,
        volume_24h=max(0.0, to_float(raw.get("volume24hr"))),
        price_change_1h=to_float(raw.get("oneHourPriceChange")),
        observed_at=observed_at,
        details={
            "slug": slug,
            "image": _text(raw.get("image"), raw.get("icon")),
            "conditionId": raw.get("conditionId") or "",
            "outcomes": outcomes,
            "outcomePrices": prices or [yes_price, no_price],
            "priceChange24hr": to_float(raw.get("oneDayPriceChange")),
            "volume7d": to_float(raw.get("volume1wk") or raw.get("volume7d")),
            "volumeTotal": to_float(raw.get("volume")),
            "liquidity": to_float(raw.get("liquidity")),
            "marketUrl": POLYMARKET_EVENT_URL.format(slug),
        },
    )


def normalize_clob_trade(raw: Dict[str, Any], market: Dict[str, Any]) -> TradeRecord:
    """CLOB ``/trades`` entry, titled by the Gamma market it was fetched for."""
    source = SourceSystem.CLOB
    trade_id = _require(raw, source, "id")
    market_id = _text(market.get("condition_id"), market.get("conditionId"),
                      raw.get("market"))
    if not market_id:
        raise MalformedRecord(source.value, "market")

    size = max(0.0, to_float(raw.get("size")))
    price = implied_probability(to_float(raw.get("price")))

    return TradeRecord(
        id=trade_id,
        market_id=market_id,
        market_title=_text(market.get("question"), default=UNKNOWN_MARKET),
        side=Side.parse(raw.get("side")),
        outcome=_text(raw.get("outcome"), default="YES"),
        price=price,
        size_units=size,
        dollar_value=size * price,
        timestamp=parse_instant(raw.get("timestamp") or raw.get("match_time")),
        trader_identifier=_text(raw.get("maker_address"), raw.get("owner"),
                                default=UNKNOWN_TRADER),
        source_system=source,
    )


def market_activity(snapshot: MarketSnapshot) -> TradeRecord:
    """Market-level "whale activity": a 24h volume reading posed as a trade.

    Direction follows the price move; the outcome is the first named outcome
    when the price rose, the second otherwise.
    """
    change_24h = to_float(snapshot.details.get("priceChange24hr"))
    outcomes = snapshot.details.get("outcomes") or ["Yes", "No"]
    rising = snapshot.price_change_1h > 0 or change_24h > 0
    outcome = outcomes[0] if rising or len(outcomes) < 2 else outcomes[1]

    return TradeRecord(
        id=f"{snapshot.market_id}-{int(snapshot.observed_at.timestamp())}",
        market_id=snapshot.market_id,
        market_title=snapshot.question,
        side=Side.BUY if rising else Side.SELL,
        outcome=str(outcome),
        price=snapshot.yes_price,
        size_units=0.0,
        dollar_value=float(round(snapshot.volume_24h)),
        timestamp=snapshot.observed_at,
        source_system=SourceSystem.GAMMA_ACTIVITY,
        details={
            "priceChange1hr": abs(snapshot.price_change_1h),
            "priceChange24hr": abs(change_24h),
            "marketUrl": snapshot.details.get("marketUrl", ""),
            "outcomes": list(outcomes),
            "outcomePrices": snapshot.details.get("outcomePrices", []),
        },
    )


# ── Kalshi ───────────────────────────────────────────────────

def normalize_kalshi_trade(raw: Dict[str, Any], market: Dict[str, Any]) -> TradeRecord:
    """Kalshi trade: ``count`` contracts at the taker side's dollar price.

    The dollar price stays raw for the notional; probability is derived
    separately against the $1.00 face value.
    """
    source = SourceSystem.KALSHI
    trade_id = _require(raw, source, "trade_id", "id")
    ticker = _text(raw.get("ticker"), market.get("ticker"))
    if not ticker:
        raise MalformedRecord(source.value, "ticker")

    taker_side = _text(raw.get("taker_side"), default="yes").lower()
    if taker_side == "no":
        price_dollars = to_float(raw.get("no_price_dollars"),
                                 default=to_float(raw.get("no_price")) / 100.0)
    else:
        price_dollars = to_float(raw.get("yes_price_dollars"),
                                 default=to_float(raw.get("yes_price")) / 100.0)
    count = max(0.0, to_float(raw.get("count")))

    return TradeRecord(
        id=trade_id,
        market_id=ticker,
        market_title=_text(market.get("title"), market.get("subtitle"), ticker),
        side=Side.BUY,
        outcome=taker_side.upper(),
        price=dollar_price_to_probability(price_dollars),
        size_units=count,
        dollar_value=round(count * price_dollars, 2),
        timestamp=parse_instant(raw.get("created_time")),
        source_system=source,
        details={
            "ticker": ticker,
            "takerSide": taker_side,
            "priceDollars": price_dollars,
        },
    )


# ── Batches ──────────────────────────────────────────────────

@dataclass
class NormalizedBatch:
    records: List[Any] = field(default_factory=list)
    failures: int = 0
    errors: List[str] = field(default_factory=list)


def normalize_batch(raws: Iterable[Any], fn: Callable[..., Any],
                    *args: Any) -> NormalizedBatch:
    """Apply ``fn`` to each raw record, counting MalformedRecord failures."""
    batch = NormalizedBatch()
    for raw in raws:
        try:
            batch.records.append(fn(raw, *args))
        except MalformedRecord as exc:
            batch.failures += 1
            batch.errors.append(str(exc))
            logger.warning("Discarding malformed record: %s", exc)
    return batch
