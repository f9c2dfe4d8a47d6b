"""Decoder for Polymarket CTF Exchange ``OrderFilled`` logs.

    event OrderFilled(bytes32 indexed orderHash, address indexed maker,
                      address indexed taker, uint256 makerAssetId,
                      uint256 takerAssetId, uint256 makerAmountFilled,
                      uint256 takerAmountFilled, uint256 fee)

Logs arrive from ``eth_getLogs`` as hex: a list of 32-byte topics (topic 0
is the event signature) and a data blob of five 32-byte words in declared
order. Everything is fixed width, so there are no length prefixes to parse
and no ABI library is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from db.models import (
    Side, SourceSystem, TradeRecord, UNKNOWN_MARKET,
)
from .errors import DecodeError, UnrecognizedEvent
from .market_math import implied_probability
from .normalize import parse_json_list


ORDER_FILLED_TOPIC = (
    "0xd0a08e8c493f9c94f29311604c9de1b4e8c8d4c06bd0c789af57f2d65bfec0f6"
)
WORD_SIZE = 32
ADDRESS_SIZE = 20
DATA_WORDS = 5
MAKER_TOPIC = 1
TAKER_TOPIC = 2
COLLATERAL_DECIMALS = 6
POLYGONSCAN_TX_URL = "https://polygonscan.com/tx/{}"


class LogCursor:
    """Sequential reader over a hex-encoded blob of 32-byte words."""

    def __init__(self, hex_data: str) -> None:
        if not isinstance(hex_data, str):
            raise DecodeError(f"expected hex string, got {type(hex_data).__name__}")
        text = hex_data[2:] if hex_data[:2].lower() == "0x" else hex_data
        try:
            self._buf = bytes.fromhex(text)
        except ValueError as exc:
            raise DecodeError(f"invalid hex payload: {exc}") from exc
        self._pos = 0

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def read_word(self, n: int = WORD_SIZE) -> bytes:
        if n <= 0 or self.remaining < n:
            raise DecodeError(
                f"cannot read {n} bytes at offset {self._pos} "
                f"({self.remaining} remaining)"
            )
        word = self._buf[self._pos:self._pos + n]
        self._pos += n
        return word

    def read_address(self) -> str:
        """Addresses are right-aligned: keep the low-order 20 bytes."""
        word = self.read_word()
        return "0x" + word[-ADDRESS_SIZE:].hex()

    def read_uint(self, decimals: int = 0) -> Union[int, float]:
        value = int.from_bytes(self.read_word(), "big", signed=False)
        if decimals > 0:
            return value / (10 ** decimals)
        return value


@dataclass(frozen=True)
class OrderFilled:
    maker: str
    taker: str
    maker_asset_id: int
    taker_asset_id: int
    maker_amount: float
    taker_amount: float
    fee: float
    block_number: int
    transaction_hash: str
    log_index: int

    @property
    def notional(self) -> float:
        # Either leg can be the USDC side of the swap.
        return max(self.maker_amount, self.taker_amount)


def _hex_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value:
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            return 0
    return 0


def decode_order_filled(log: Dict[str, Any],
                        topic: str = ORDER_FILLED_TOPIC,
                        decimals: int = COLLATERAL_DECIMALS) -> OrderFilled:
    """Decode one raw log entry.

    Raises UnrecognizedEvent when topic 0 is not ``topic`` and DecodeError
    for any structural problem; callers skip the single log in both cases.
    """
    if not isinstance(log, dict):
        raise DecodeError(f"expected log object, got {type(log).__name__}")
    topics = log.get("topics") or []
    if not topics or str(topics[0]).lower() != topic.lower():
        raise UnrecognizedEvent(f"unexpected event signature: {topics[:1]}")
    if len(topics) <= TAKER_TOPIC:
        raise DecodeError(f"expected at least {TAKER_TOPIC + 1} topics, got {len(topics)}")

    maker = LogCursor(topics[MAKER_TOPIC]).read_address()
    taker = LogCursor(topics[TAKER_TOPIC]).read_address()

    data = LogCursor(log.get("data") or "0x")
    if len(data) % WORD_SIZE:
        raise DecodeError(f"data length {len(data)} is not a multiple of {WORD_SIZE}")
    if len(data) < DATA_WORDS * WORD_SIZE:
        raise DecodeError(f"expected {DATA_WORDS} data words, got {len(data) // WORD_SIZE}")

    maker_asset_id = data.read_uint()
    taker_asset_id = data.read_uint()
    maker_amount = data.read_uint(decimals)
    taker_amount = data.read_uint(decimals)
    fee = data.read_uint(decimals)

    return OrderFilled(
        maker=maker,
        taker=taker,
        maker_asset_id=int(maker_asset_id),
        taker_asset_id=int(taker_asset_id),
        maker_amount=float(maker_amount),
        taker_amount=float(taker_amount),
        fee=float(fee),
        block_number=_hex_int(log.get("blockNumber")),
        transaction_hash=str(log.get("transactionHash") or ""),
        log_index=_hex_int(log.get("logIndex")),
    )


class AssetIndex:
    """Token id -> (market, outcome name), built once per fetch cycle."""

    def __init__(self) -> None:
        self._by_token: Dict[str, Tuple[Dict[str, Any], str]] = {}

    @classmethod
    def from_markets(cls, markets: List[Dict[str, Any]]) -> AssetIndex:
        index = cls()
        for market in markets:
            token_ids = parse_json_list(market.get("clobTokenIds"))
            outcomes = parse_json_list(market.get("outcomes")) or ["Yes", "No"]
            for position, token_id in enumerate(token_ids):
                outcome = outcomes[position] if position < len(outcomes) else "Yes"
                index._by_token[str(token_id)] = (market, str(outcome))
        return index

    def __len__(self) -> int:
        return len(self._by_token)

    def resolve(self, asset_id: int) -> Optional[Tuple[Dict[str, Any], str]]:
        return self._by_token.get(str(asset_id))


def order_filled_to_trade(event: OrderFilled, asset_index: AssetIndex,
                          timestamp: datetime) -> TradeRecord:
    """Build the canonical record for a decoded fill.

    Unresolvable asset ids still produce a record, titled "Unknown Market".
    """
    resolved = asset_index.resolve(event.maker_asset_id)
    token_id = event.maker_asset_id
    if resolved is None:
        resolved = asset_index.resolve(event.taker_asset_id)
        token_id = event.taker_asset_id

    market: Dict[str, Any] = {}
    outcome = "YES"
    if resolved is not None:
        market, outcome = resolved

    notional = event.notional
    smaller = min(event.maker_amount, event.taker_amount)
    price = implied_probability(smaller / notional) if notional > 0 else 0.0

    return TradeRecord(
        id=f"{event.transaction_hash}-{event.log_index}",
        market_id=str(market.get("id") or "unknown"),
        market_title=market.get("question") or UNKNOWN_MARKET,
        side=Side.BUY,  # the taker fills against a resting order
        outcome=outcome.upper(),
        price=price,
        size_units=notional,
        dollar_value=round(notional, 2),
        timestamp=timestamp,
        trader_identifier=event.taker,
        source_system=SourceSystem.ONCHAIN,
        details={
            "maker": event.maker,
            "tokenId": str(token_id),
            "blockNumber": event.block_number,
            "transactionHash": event.transaction_hash,
            "polygonScanUrl": POLYGONSCAN_TX_URL.format(event.transaction_hash),
        },
    )


def decode_trade(log: Dict[str, Any], asset_index: AssetIndex,
                 block_timestamp: Callable[[int], datetime],
                 topic: str = ORDER_FILLED_TOPIC,
                 decimals: int = COLLATERAL_DECIMALS) -> TradeRecord:
    """Decode a log and resolve its market and block time in one step."""
    event = decode_order_filled(log, topic=topic, decimals=decimals)
    return order_filled_to_trade(event, asset_index,
                                 block_timestamp(event.block_number))
