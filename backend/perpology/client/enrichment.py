"""
Enrichment widgets revealed under an assistant message: trading-signal card, chart placeholder, source tags.
Built from the response metadata (camelCase keys as returned by the API).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

CRYPTO_NAMES: dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "SOL": "Solana",
    "ADA": "Cardano",
    "DOT": "Polkadot",
    "LINK": "Chainlink",
    "UNI": "Uniswap",
    "AAVE": "Aave",
    "MATIC": "Polygon",
    "AVAX": "Avalanche",
}

SIGNAL_TITLE = "Perpology Signal"
EXTERNAL_LINK_LABEL = "External Link"


def crypto_name(symbol: str) -> str:
    return CRYPTO_NAMES.get(symbol, symbol)


def format_price(value: float) -> str:
    """$42,000 / $0.123: thousands separators, at most three decimals."""
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"${text}"


def extract_domain(url: str) -> str:
    """Host without a leading www.; External Link when the URL has no host."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return EXTERNAL_LINK_LABEL
    if not host:
        return EXTERNAL_LINK_LABEL
    return host[4:] if host.startswith("www.") else host


@dataclass(frozen=True)
class TradingSignalCard:
    direction: str
    entry: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def lines(self) -> list[str]:
        out = []
        if self.entry:
            out.append(f"Entry: {format_price(self.entry)}")
        if self.stop_loss:
            out.append(f"Stop Loss: {format_price(self.stop_loss)}")
        if self.take_profit:
            out.append(f"Take Profit: {format_price(self.take_profit)}")
        return out


@dataclass(frozen=True)
class ChartPlaceholder:
    symbol: str
    name: str


@dataclass(frozen=True)
class SourceTag:
    url: str
    label: str


@dataclass(frozen=True)
class Enrichments:
    signal: Optional[TradingSignalCard] = None
    chart: Optional[ChartPlaceholder] = None
    sources: tuple[SourceTag, ...] = ()

    @property
    def empty(self) -> bool:
        return self.signal is None and self.chart is None and not self.sources


def build_enrichments(metadata: Optional[Mapping[str, Any]]) -> Enrichments:
    if not metadata:
        return Enrichments()
    signal = None
    trading = metadata.get("tradingData")
    if trading:
        signal = TradingSignalCard(
            direction=trading.get("direction") or "neutral",
            entry=trading.get("entry"),
            stop_loss=trading.get("stopLoss"),
            take_profit=trading.get("takeProfit"),
        )
    chart = None
    symbols = metadata.get("cryptoSymbols") or []
    if metadata.get("hasChart") and symbols:
        chart = ChartPlaceholder(symbol=symbols[0], name=crypto_name(symbols[0]))
    sources = tuple(
        SourceTag(url=link, label=extract_domain(link) or f"Source {i + 1}")
        for i, link in enumerate(metadata.get("links") or [])
    )
    return Enrichments(signal=signal, chart=chart, sources=sources)
