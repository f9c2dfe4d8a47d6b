from .database import DatabaseManager
from .models import (
    MarketSnapshot, MarketSummary, RankedResult, Side, SourceSystem,
    TradeRecord, TradeSummary,
)
from .queries import TradeQueries

__all__ = [
    "DatabaseManager",
    "MarketSnapshot",
    "MarketSummary",
    "RankedResult",
    "Side",
    "SourceSystem",
    "TradeRecord",
    "TradeSummary",
    "TradeQueries",
]
