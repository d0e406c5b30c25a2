# External collaborators
from .polymarket_api import PolymarketAPI, TradingCredentialsError
from .websocket_client import MarketWebSocket
from .wallet import WalletService

__all__ = ["PolymarketAPI", "TradingCredentialsError", "MarketWebSocket", "WalletService"]
