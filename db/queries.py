"""Named query functions for the stored trades and market snapshots."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pipeline.errors import SourceUnavailable

from .database import DatabaseManager

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


class TradeQueries:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _fetch_all(self, source: str, sql: str,
                   params: tuple = ()) -> List[Dict[str, Any]]:
        try:
            with self.db._connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except Exception as exc:
            # Any driver error means the hosted source is unusable this cycle.
            logger.error("Query against %s failed: %s", source, exc)
            raise SourceUnavailable(source, str(exc)) from exc
        return [dict(r) for r in rows]

    # ── Trades ───────────────────────────────────────────────

    def get_trades(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """All stored trades, largest notional first."""
        sql = "SELECT * FROM trades ORDER BY size DESC"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return self._fetch_all("stored_trades", sql, params)

    def insert_trade(self, trade: Dict[str, Any]) -> None:
        with self.db._connect() as conn:
            conn.execute("""
                INSERT INTO trades (id, market_id, market_question, platform_data,
                    side, outcome, size, price, trader_wallet, taker_address,
                    timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    size=excluded.size,
                    price=excluded.price,
                    platform_data=excluded.platform_data
            """, (
                trade["id"], trade["market_id"],
                trade.get("market_question", ""),
                _json(trade.get("platform_data")),
                trade.get("side", "BUY"), trade.get("outcome", ""),
                trade.get("size"), trade.get("price"),
                trade.get("trader_wallet"), trade.get("taker_address"),
                trade.get("timestamp") or _now(),
            ))

    def insert_trades_batch(self, trades: List[Dict[str, Any]]) -> int:
        for trade in trades:
            self.insert_trade(trade)
        return len(trades)

    # ── Market snapshots ─────────────────────────────────────

    def get_market_snapshots(self) -> List[Dict[str, Any]]:
        """All snapshots, most recent first."""
        return self._fetch_all(
            "stored_snapshots",
            "SELECT * FROM market_snapshots ORDER BY snapshot_time DESC",
        )

    def insert_snapshot(self, snapshot: Dict[str, Any]) -> None:
        with self.db._connect() as conn:
            conn.execute("""
                INSERT INTO market_snapshots (market_id, event_id, market_question,
                    yes_price, no_price, volume_24h, price_change_1h,
                    snapshot_time, platform_data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                snapshot["market_id"], snapshot.get("event_id"),
                snapshot.get("market_question", ""),
                snapshot.get("yes_price"), snapshot.get("no_price"),
                snapshot.get("volume_24h"), snapshot.get("price_change_1h"),
                snapshot.get("snapshot_time") or _now(),
                _json(snapshot.get("platform_data")),
            ))

    def get_counts(self) -> Dict[str, int]:
        with self.db._connect() as conn:
            trades = conn.execute("SELECT COUNT(*) AS n FROM trades").fetchone()
            snaps = conn.execute("SELECT COUNT(*) AS n FROM market_snapshots").fetchone()
        return {"trades": trades["n"], "market_snapshots": snaps["n"]}
