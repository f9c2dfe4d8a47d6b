"""Shared fixtures: an isolated config, a seeded-on-demand SQLite database."""

from datetime import datetime, timezone

import pytest

from config import (
    AppConfig, KalshiConfig, OutputConfig, PolymarketConfig,
)
from db.database import DatabaseManager
from db.models import MarketSnapshot, SourceSystem, TradeRecord
from db.queries import TradeQueries


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        polymarket=PolymarketConfig(rate_limit_delay=0.0),
        kalshi=KalshiConfig(rate_limit_delay=0.0),
        output=OutputConfig(
            data_dir=tmp_path / "data",
            public_dir=tmp_path / "public" / "data",
        ),
        db_path=tmp_path / "test.db",
    )


@pytest.fixture
def db(tmp_path):
    mgr = DatabaseManager(db_path=tmp_path / "test.db")
    yield mgr
    # Close WAL connections to avoid Windows PermissionError on cleanup
    try:
        with mgr._connect() as conn:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
    except Exception:
        pass


@pytest.fixture
def queries(db):
    return TradeQueries(db)


def make_trade(trade_id, dollars, market_id="m1", title="WILL X HAPPEN?",
               trader="0xabc", price=0.5, ts=1_700_000_000,
               source=SourceSystem.CLOB):
    return TradeRecord(
        id=trade_id,
        market_id=market_id,
        market_title=title,
        price=price,
        size_units=dollars / price if price else 0.0,
        dollar_value=dollars,
        timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
        trader_identifier=trader,
        source_system=source,
    )


def make_snapshot(market_id, volume=2_000_000.0, yes=0.5, change_1h=0.0,
                  ts=1_700_000_000, question=None):
    return MarketSnapshot(
        market_id=market_id,
        question=question or f"Market {market_id}?",
        yes_price=yes,
        no_price=1.0 - yes,
        volume_24h=volume,
        price_change_1h=change_1h,
        observed_at=datetime.fromtimestamp(ts, tz=timezone.utc),
    )
