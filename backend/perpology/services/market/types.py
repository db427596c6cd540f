"""
Typed shapes returned by the market gateway (camelCase keys, sent to the model and the client as JSON).
"""
from typing import Optional, TypedDict


class TechnicalIndicators(TypedDict):
    """From hourly Binance klines; sma50 is None with fewer than 50 candles."""
    sma20: Optional[float]
    sma50: Optional[float]
    rsi: Optional[float]  # 14-period
    support: float  # lowest low of the last 20 candles
    resistance: float  # highest high of the last 20 candles
    trend: str  # bullish | bearish | neutral


class MarketSnapshot(TypedDict, total=False):
    symbol: str
    price: Optional[float]
    change24h: Optional[float]  # percent
    volume24h: Optional[float]
    marketCap: Optional[float]
    high24h: Optional[float]
    low24h: Optional[float]
    timestamp: int  # epoch ms
    technicalIndicators: Optional[TechnicalIndicators]


class FearGreed(TypedDict):
    value: int
    classification: str


class MarketOverview(TypedDict, total=False):
    totalMarketCap: Optional[float]
    totalVolume: Optional[float]
    btcDominance: Optional[float]
    ethDominance: Optional[float]
    fearGreedIndex: Optional[FearGreed]


class ChartEmbed(TypedDict):
    embedUrl: str
    symbol: str
    exchange: str
    interval: str
