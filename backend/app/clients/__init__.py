"""Exchange and market-data clients."""

from app.clients.binance_rest import BinanceRestClient, RateLimiter
from app.clients.binance_ws_trade import BinanceTradeWebSocket, parse_trade_message
from app.clients.coingecko_rest import CoinGeckoClient

__all__ = [
    "BinanceRestClient",
    "RateLimiter",
    "BinanceTradeWebSocket",
    "parse_trade_message",
    "CoinGeckoClient",
]
