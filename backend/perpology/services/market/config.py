"""Market feed config: base URLs, timeouts and symbol mappings for Binance, CoinGecko and TradingView."""
from urllib.parse import urlencode

from perpology.config import settings
from perpology.core.constants import CHART_EXCHANGE, CHART_INTERVAL

# Ticker -> CoinGecko coin id. Symbols without an id are priced from Binance only.
COINGECKO_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "ADA": "cardano",
    "DOT": "polkadot",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "ATOM": "cosmos",
    "NEAR": "near",
    "FTM": "fantom",
    "ALGO": "algorand",
    "XRP": "ripple",
    "LTC": "litecoin",
    "DOGE": "dogecoin",
}

# Full coin names users type instead of tickers.
SYMBOL_ALIASES: dict[str, str] = {
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
    "SOLANA": "SOL",
    "CARDANO": "ADA",
    "POLKADOT": "DOT",
    "CHAINLINK": "LINK",
    "UNISWAP": "UNI",
    "POLYGON": "MATIC",
    "AVALANCHE": "AVAX",
    "COSMOS": "ATOM",
    "ALGORAND": "ALGO",
    "RIPPLE": "XRP",
    "LITECOIN": "LTC",
}

TRADINGVIEW_EMBED_URL = "https://www.tradingview.com/widgetembed/"


def tradingview_embed_url(symbol: str) -> str:
    """Dark-theme TradingView widget URL for SYMBOL/USDT on Binance, hourly candles."""
    pair = f"{CHART_EXCHANGE}:{symbol}USDT"
    params = {
        "frameElementId": "tradingview_chart",
        "symbol": pair,
        "interval": CHART_INTERVAL,
        "hidesidetoolbar": "1",
        "hidetoptoolbar": "1",
        "symboledit": "1",
        "saveimage": "1",
        "toolbarbg": "f1f3f6",
        "studies": "[]",
        "hideideas": "1",
        "theme": "dark",
        "style": "1",
        "timezone": "Etc/UTC",
        "locale": "en",
        "utm_medium": "widget",
        "utm_campaign": "chart",
        "utm_term": pair,
    }
    return f"{TRADINGVIEW_EMBED_URL}?{urlencode(params)}"


class MarketConfig:
    """Feed endpoints, timeout and cache TTL for the market gateway."""

    __slots__ = ("binance_base_url", "coingecko_base_url", "fear_greed_url", "timeout", "cache_ttl_seconds")

    def __init__(
        self,
        *,
        binance_base_url: str | None = None,
        coingecko_base_url: str | None = None,
        fear_greed_url: str | None = None,
        timeout: float | None = None,
        cache_ttl_seconds: float | None = None,
    ) -> None:
        self.binance_base_url = (binance_base_url or settings.binance_base_url).rstrip("/")
        self.coingecko_base_url = (coingecko_base_url or settings.coingecko_base_url).rstrip("/")
        self.fear_greed_url = fear_greed_url or settings.fear_greed_url
        self.timeout = timeout if timeout is not None else settings.market_request_timeout_seconds
        self.cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None else settings.market_cache_ttl_seconds
        )
