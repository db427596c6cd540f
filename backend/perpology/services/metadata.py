"""
Response metadata extraction: structured trading signals, chart intent, symbols and links
pulled out of free-form assistant text.

Pure and deterministic; no I/O. Vocabularies live in MetadataVocabulary so the keyword
sets can change without touching the extraction logic.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Direction = Literal["long", "short", "neutral"]

_NUMBER = r"\$?(\d[\d,]*(?:\.\d+)?)"
_SEP = r"[:\s]*"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TradingData(_CamelModel):
    entry: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    direction: Direction = "neutral"


class ResponseMetadata(_CamelModel):
    has_chart: bool = False
    has_trading_signal: bool = False
    crypto_symbols: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    trading_data: Optional[TradingData] = None

    def to_dict(self) -> dict:
        """camelCase JSON shape stored on the assistant message and returned by the API."""
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class MetadataVocabulary:
    symbols: tuple[str, ...]
    signal_keywords: tuple[str, ...]
    chart_keywords: tuple[str, ...]
    default_chart_symbol: str = "BTC"

    def _alternation(self, words: tuple[str, ...]) -> re.Pattern:
        return re.compile(r"\b(" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)

    @property
    def symbol_pattern(self) -> re.Pattern:
        return self._alternation(self.symbols)

    @property
    def signal_pattern(self) -> re.Pattern:
        return self._alternation(self.signal_keywords)

    @property
    def chart_pattern(self) -> re.Pattern:
        return self._alternation(self.chart_keywords)


SUPPORTED_SYMBOLS = (
    "BTC", "ETH", "SOL", "ADA", "DOT", "LINK", "UNI", "AAVE", "MATIC", "AVAX",
    "ATOM", "NEAR", "FTM", "ALGO", "XRP", "LTC", "BCH", "ETC", "XLM", "VET",
    "THETA", "HBAR", "ICP", "EGLD", "FLOW", "MANA", "SAND", "AXS", "ENJ", "CHZ",
    "BAT", "ZRX", "COMP", "MKR", "SNX", "YFI", "CRV", "SUSHI", "1INCH", "ALPHA",
    "RUNE", "LUNA", "UST", "DOGE", "SHIB", "PEPE", "FLOKI",
)

DEFAULT_VOCABULARY = MetadataVocabulary(
    symbols=SUPPORTED_SYMBOLS,
    signal_keywords=(
        "entry", "stop loss", "take profit", "long", "short",
        "buy", "sell", "target", "resistance", "support",
    ),
    chart_keywords=(
        "chart", "graph", "technical analysis", "candlestick", "price action",
        "trading view", "tradingview", "price", "trading", "crypto",
        "bitcoin", "ethereum", "solana", "analysis",
    ),
)

_LINK_RE = re.compile(r"https?://\S+")
_ENTRY_RE = re.compile(r"entry" + _SEP + _NUMBER, re.IGNORECASE)
_STOP_LOSS_RE = re.compile(r"stop\s*loss" + _SEP + _NUMBER, re.IGNORECASE)
_TAKE_PROFIT_RE = re.compile(r"take\s*profit" + _SEP + _NUMBER, re.IGNORECASE)
_LONG_RE = re.compile(r"\b(long|buy)\b", re.IGNORECASE)
_SHORT_RE = re.compile(r"\b(short|sell)\b", re.IGNORECASE)


def _first_number(pattern: re.Pattern, text: str) -> Optional[float]:
    match = pattern.search(text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def _direction(text: str) -> Direction:
    # long wins when both directions appear
    if _LONG_RE.search(text):
        return "long"
    if _SHORT_RE.search(text):
        return "short"
    return "neutral"


def extract_symbols(text: str, vocabulary: MetadataVocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Uppercased tickers in first-seen order, de-duplicated."""
    seen: list[str] = []
    for match in vocabulary.symbol_pattern.finditer(text or ""):
        symbol = match.group(1).upper()
        if symbol not in seen:
            seen.append(symbol)
    return seen


def extract_trading_data(text: str) -> TradingData:
    return TradingData(
        entry=_first_number(_ENTRY_RE, text),
        stop_loss=_first_number(_STOP_LOSS_RE, text),
        take_profit=_first_number(_TAKE_PROFIT_RE, text),
        direction=_direction(text),
    )


def extract(
    assistant_text: str,
    user_text: str,
    vocabulary: MetadataVocabulary = DEFAULT_VOCABULARY,
) -> ResponseMetadata:
    assistant_text = assistant_text or ""
    user_text = user_text or ""

    symbols = extract_symbols(assistant_text, vocabulary)
    for symbol in extract_symbols(user_text, vocabulary):
        if symbol not in symbols:
            symbols.append(symbol)

    has_signal = bool(vocabulary.signal_pattern.search(assistant_text))
    has_chart = bool(symbols)
    chart_pattern = vocabulary.chart_pattern
    if chart_pattern.search(assistant_text) or chart_pattern.search(user_text):
        has_chart = True
        if not symbols:
            symbols = [vocabulary.default_chart_symbol]

    return ResponseMetadata(
        has_chart=has_chart,
        has_trading_signal=has_signal,
        crypto_symbols=symbols,
        links=_LINK_RE.findall(assistant_text),
        trading_data=extract_trading_data(assistant_text) if has_signal else None,
    )
