"""Configuration dataclasses and .env loading for Whale Watch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

load_dotenv()

# Project root
PROJECT_DIR = Path(__file__).resolve().parent
DATA_DIR = PROJECT_DIR / "data"
DATA_DIR.mkdir(exist_ok=True)
PUBLIC_DIR = PROJECT_DIR / "public" / "data"
DB_PATH = DATA_DIR / "whale_watch.db"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class PolymarketConfig:
    gamma_url: str = "https://gamma-api.polymarket.com"
    clob_url: str = "https://clob.polymarket.com"
    market_tag: str = "Politics"
    market_limit: int = 50
    max_markets: int = 20           # CLOB fan-out cap
    discovery_limit: int = 500      # open markets scanned for top-markets
    discovery_page_size: int = 100
    rate_limit_delay: float = 0.1
    lookback_hours: int = 24
    enrichment_ttl: float = 3600.0  # slug/image cache lifetime

    @classmethod
    def from_env(cls) -> PolymarketConfig:
        return cls(
            gamma_url=os.getenv("GAMMA_API_URL", cls.gamma_url),
            clob_url=os.getenv("CLOB_API_URL", cls.clob_url),
        )


@dataclass
class KalshiConfig:
    base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    rate_limit_delay: float = 0.1
    market_limit: int = 1000
    max_markets: int = 20
    page_limit: int = 1000
    max_pages: int = 10
    lookback_hours: int = 24

    @classmethod
    def from_env(cls) -> KalshiConfig:
        return cls(base_url=os.getenv("KALSHI_API_URL", cls.base_url))


@dataclass
class PolygonConfig:
    rpc_url: str = "https://rpc.ankr.com/polygon"
    # Polymarket CTF Exchange
    exchange_address: str = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
    order_filled_topic: str = (
        "0xd0a08e8c493f9c94f29311604c9de1b4e8c8d4c06bd0c789af57f2d65bfec0f6"
    )
    block_window: int = 50          # ~2 minutes of Polygon blocks
    max_logs: int = 100
    collateral_decimals: int = 6    # USDC
    market_limit: int = 500

    @classmethod
    def from_env(cls) -> PolygonConfig:
        return cls(rpc_url=os.getenv("POLYGON_RPC_URL", cls.rpc_url))


@dataclass
class WhaleThresholds:
    """Per-source whale thresholds in USD, plus market panel floors."""
    clob: float = 10_000.0
    stored_trades: float = 10_000.0
    kalshi: float = 100.0
    onchain: float = 100.0
    activity_volume: float = 5_000.0
    volatility: float = 0.01                    # 1% move in an hour
    min_market_volume: float = 1_000_000.0
    competitive_min_volume: float = 500_000.0

    @classmethod
    def from_env(cls) -> WhaleThresholds:
        return cls(
            clob=_env_float("WHALE_THRESHOLD_USD", cls.clob),
            stored_trades=_env_float("WHALE_THRESHOLD_USD", cls.stored_trades),
        )


@dataclass
class ResultCaps:
    whale_trades: int = 50
    market_panel: int = 6
    top_markets: int = 10
    onchain: int = 50
    kalshi: int = 100
    activity: int = 50


@dataclass
class SchedulerConfig:
    stored_trades_interval_minutes: int = 5
    clob_whales_interval_minutes: int = 5
    onchain_interval_minutes: int = 2
    kalshi_interval_minutes: int = 15
    whale_activity_interval_minutes: int = 10
    top_markets_interval_minutes: int = 10
    market_panel_interval_minutes: int = 5


@dataclass
class OutputConfig:
    data_dir: Path = DATA_DIR
    public_dir: Path = PUBLIC_DIR
    feed_url: str = ""              # dashboard pulls over HTTP when set


@dataclass
class ApiConfig:
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> ApiConfig:
        return cls(
            host=os.getenv("API_HOST", cls.host),
            port=int(_env_float("API_PORT", cls.port)),
        )


@dataclass
class AppConfig:
    polymarket: PolymarketConfig = field(default_factory=PolymarketConfig)
    kalshi: KalshiConfig = field(default_factory=KalshiConfig)
    polygon: PolygonConfig = field(default_factory=PolygonConfig)
    thresholds: WhaleThresholds = field(default_factory=WhaleThresholds)
    caps: ResultCaps = field(default_factory=ResultCaps)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    db_path: Path = DB_PATH
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> AppConfig:
        return cls(
            polymarket=PolymarketConfig.from_env(),
            kalshi=KalshiConfig.from_env(),
            polygon=PolygonConfig.from_env(),
            thresholds=WhaleThresholds.from_env(),
            output=OutputConfig(feed_url=os.getenv("DASHBOARD_FEED_URL", "")),
            api=ApiConfig.from_env(),
            database_url=os.getenv("DATABASE_URL") or None,
        )


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    return AppConfig.from_env()
