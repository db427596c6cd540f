"""
Market data gateway: live snapshots, market overview, chart embeds and the per-message market context.

All feeds are best effort: a failing feed is logged and degrades to None, never raises.
Results are cached for a short TTL keyed by crypto_<SYMBOL> and market_overview.
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Optional

from perpology.core.constants import CHART_EXCHANGE, CHART_INTERVAL, KLINE_INTERVAL, KLINE_LIMIT, RELEVANT_SYMBOL_LIMIT
from perpology.core.errors import UpstreamUnavailable
from perpology.services.market.cache import TTLCache
from perpology.services.market.client import MarketHttpClient
from perpology.services.market.config import COINGECKO_IDS, SYMBOL_ALIASES, MarketConfig, tradingview_embed_url
from perpology.services.market.indicators import compute_indicators
from perpology.services.market.types import (
    ChartEmbed,
    FearGreed,
    MarketOverview,
    MarketSnapshot,
    TechnicalIndicators,
)
from perpology.services.metadata import SUPPORTED_SYMBOLS

logger = logging.getLogger(__name__)

OVERVIEW_CACHE_KEY = "market_overview"

_SYMBOL_RE = re.compile(
    r"\b(" + "|".join(re.escape(s) for s in SUPPORTED_SYMBOLS + tuple(SYMBOL_ALIASES)) + r")\b",
    re.IGNORECASE,
)


def _cache_key(symbol: str) -> str:
    return f"crypto_{symbol}"


def _float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first(*values: Optional[float]) -> Optional[float]:
    for v in values:
        if v is not None:
            return v
    return None


def extract_symbols(text: str) -> list[str]:
    """Tickers and full coin names in text, mapped to tickers, de-duplicated in first-seen order."""
    out: list[str] = []
    for match in _SYMBOL_RE.finditer(text or ""):
        upper = match.group(1).upper()
        symbol = SYMBOL_ALIASES.get(upper, upper)
        if symbol not in out:
            out.append(symbol)
    return out


class MarketDataGateway:
    """Binance + CoinGecko + Fear & Greed behind one read-only, cached facade."""

    def __init__(
        self,
        config: MarketConfig | None = None,
        client: MarketHttpClient | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self._config = config or (client.config if client else MarketConfig())
        self._client = client or MarketHttpClient(self._config)
        self._cache = cache or TTLCache(self._config.cache_ttl_seconds)

    # -- raw feeds ---------------------------------------------------------

    def _binance_ticker(self, symbol: str) -> Optional[dict[str, Optional[float]]]:
        try:
            data = self._client.get_json(
                f"{self._config.binance_base_url}/ticker/24hr",
                params={"symbol": f"{symbol}USDT"},
                source="Binance",
            )
        except UpstreamUnavailable as e:
            logger.info("Binance ticker unavailable for %s: %s", symbol, e.message)
            return None
        if not isinstance(data, dict):
            return None
        return {
            "price": _float(data.get("lastPrice")),
            "change": _float(data.get("priceChangePercent")),
            "volume": _float(data.get("volume")),
            "high": _float(data.get("highPrice")),
            "low": _float(data.get("lowPrice")),
        }

    def _coingecko_price(self, symbol: str) -> Optional[dict[str, Optional[float]]]:
        coin_id = COINGECKO_IDS.get(symbol)
        if not coin_id:
            return None
        try:
            data = self._client.get_json(
                f"{self._config.coingecko_base_url}/simple/price",
                params={
                    "ids": coin_id,
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                    "include_24hr_vol": "true",
                    "include_market_cap": "true",
                },
                source="CoinGecko",
            )
        except UpstreamUnavailable as e:
            logger.info("CoinGecko price unavailable for %s: %s", symbol, e.message)
            return None
        row = data.get(coin_id) if isinstance(data, dict) else None
        if not isinstance(row, dict):
            return None
        return {
            "price": _float(row.get("usd")),
            "change": _float(row.get("usd_24h_change")),
            "volume": _float(row.get("usd_24h_vol")),
            "market_cap": _float(row.get("usd_market_cap")),
        }

    def technical_indicators(self, symbol: str) -> Optional[TechnicalIndicators]:
        symbol = symbol.upper()
        try:
            klines = self._client.get_json(
                f"{self._config.binance_base_url}/klines",
                params={"symbol": f"{symbol}USDT", "interval": KLINE_INTERVAL, "limit": KLINE_LIMIT},
                source="Binance",
            )
        except UpstreamUnavailable as e:
            logger.info("Kline data unavailable for %s: %s", symbol, e.message)
            return None
        if not isinstance(klines, list):
            return None
        try:
            return compute_indicators(klines)
        except (TypeError, ValueError, IndexError):
            logger.warning("Malformed kline data for %s", symbol)
            return None

    def _fear_greed(self) -> Optional[FearGreed]:
        try:
            data = self._client.get_json(self._config.fear_greed_url, source="Fear & Greed")
            entry = data["data"][0]
            return {"value": int(entry["value"]), "classification": entry["value_classification"]}
        except UpstreamUnavailable as e:
            logger.info("Fear & Greed index unavailable: %s", e.message)
        except (KeyError, IndexError, TypeError, ValueError):
            logger.warning("Malformed Fear & Greed response")
        return None

    # -- public API --------------------------------------------------------

    def snapshot(self, symbol: str) -> Optional[MarketSnapshot]:
        """Merged live data for one ticker; None when both price sources fail."""
        symbol = (symbol or "").strip().upper()
        if not symbol:
            return None
        cached = self._cache.get(_cache_key(symbol))
        if cached is not None:
            return cached

        binance = self._binance_ticker(symbol)
        gecko = self._coingecko_price(symbol)
        if binance is None and gecko is None:
            logger.warning("No market data for %s", symbol)
            return None
        binance = binance or {}
        gecko = gecko or {}
        data: MarketSnapshot = {
            "symbol": symbol,
            "price": _first(binance.get("price"), gecko.get("price")),
            "change24h": _first(binance.get("change"), gecko.get("change")),
            "volume24h": _first(binance.get("volume"), gecko.get("volume")),
            "marketCap": gecko.get("market_cap"),
            "high24h": binance.get("high"),
            "low24h": binance.get("low"),
            "timestamp": int(time.time() * 1000),
            "technicalIndicators": self.technical_indicators(symbol),
        }
        self._cache.set(_cache_key(symbol), data)
        return data

    def market_overview(self) -> Optional[MarketOverview]:
        """Global market cap, volume, BTC/ETH dominance and the Fear & Greed index."""
        cached = self._cache.get(OVERVIEW_CACHE_KEY)
        if cached is not None:
            return cached
        try:
            payload = self._client.get_json(f"{self._config.coingecko_base_url}/global", source="CoinGecko")
            g = payload["data"]
            data: MarketOverview = {
                "totalMarketCap": _float(g["total_market_cap"].get("usd")),
                "totalVolume": _float(g["total_volume"].get("usd")),
                "btcDominance": _float(g["market_cap_percentage"].get("btc")),
                "ethDominance": _float(g["market_cap_percentage"].get("eth")),
                "fearGreedIndex": self._fear_greed(),
            }
        except UpstreamUnavailable as e:
            logger.info("Market overview unavailable: %s", e.message)
            return None
        except (KeyError, TypeError, AttributeError):
            logger.warning("Malformed CoinGecko global response")
            return None
        self._cache.set(OVERVIEW_CACHE_KEY, data)
        return data

    def relevant_context(self, message: str) -> dict[str, Any]:
        """
        Market context for one chat message: snapshots of up to 3 mentioned symbols (cryptoData,
        None when no symbol is named or none could be fetched), the overview and a timestamp.
        The overview is included whether or not a symbol is named.
        """
        crypto_data: dict[str, MarketSnapshot] = {}
        for symbol in extract_symbols(message)[:RELEVANT_SYMBOL_LIMIT]:
            data = self.snapshot(symbol)
            if data:
                crypto_data[symbol] = data
        return {
            "cryptoData": crypto_data or None,
            "marketOverview": self.market_overview(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "requiresRealTimeData": True,
        }

    def chart(self, symbol: str) -> ChartEmbed:
        symbol = symbol.strip().upper()
        return {
            "embedUrl": tradingview_embed_url(symbol),
            "symbol": symbol,
            "exchange": CHART_EXCHANGE,
            "interval": CHART_INTERVAL,
        }

    def clear_cache(self) -> None:
        self._cache.clear()
