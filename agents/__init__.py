from .base import AgentResult, AgentStatus, BaseAgent, BatchOutcome
from .registry import AgentRegistry
from .activity_agent import WhaleActivityAgent
from .clob_whale_agent import ClobWhaleAgent
from .kalshi_agent import KalshiAgent
from .market_panel_agent import MarketPanelAgent
from .onchain_agent import OnChainAgent
from .stored_trades_agent import StoredTradesAgent
from .top_markets_agent import TopMarketsAgent

# Registration order is run order for --all.
ALL_AGENTS = (
    StoredTradesAgent,
    ClobWhaleAgent,
    OnChainAgent,
    KalshiAgent,
    WhaleActivityAgent,
    TopMarketsAgent,
    MarketPanelAgent,
)

__all__ = [
    "ALL_AGENTS",
    "AgentRegistry",
    "AgentResult",
    "AgentStatus",
    "BaseAgent",
    "BatchOutcome",
    "ClobWhaleAgent",
    "KalshiAgent",
    "MarketPanelAgent",
    "OnChainAgent",
    "StoredTradesAgent",
    "TopMarketsAgent",
    "WhaleActivityAgent",
]
