from .kalshi_client import KalshiClient
from .polygon_client import PolygonClient
from .polymarket_client import PolymarketClient

__all__ = ["KalshiClient", "PolygonClient", "PolymarketClient"]
