"""
Market data: Binance/CoinGecko snapshots, market overview and TradingView chart embeds.
"""
from perpology.services.market.cache import TTLCache
from perpology.services.market.client import MarketHttpClient
from perpology.services.market.config import MarketConfig
from perpology.services.market.gateway import MarketDataGateway, extract_symbols

__all__ = [
    "MarketConfig",
    "MarketDataGateway",
    "MarketHttpClient",
    "TTLCache",
    "extract_symbols",
]
