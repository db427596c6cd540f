"""Technical indicators over hourly closes: SMA, RSI, support/resistance and a coarse trend."""
from typing import Optional, Sequence

from perpology.services.market.types import TechnicalIndicators

MIN_CANDLES = 20
RSI_PERIOD = 14
TREND_WINDOW = 10
TREND_THRESHOLD_PCT = 2.0


def sma(prices: Sequence[float], period: int) -> Optional[float]:
    if len(prices) < period:
        return None
    return sum(prices[-period:]) / period


def rsi(prices: Sequence[float], period: int = RSI_PERIOD) -> Optional[float]:
    """Simple (non-smoothed) RSI over the last `period` changes."""
    if len(prices) < period + 1:
        return None
    gains = 0.0
    losses = 0.0
    for i in range(len(prices) - period, len(prices)):
        change = prices[i] - prices[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change
    if losses == 0:
        return 100.0 if gains > 0 else 50.0
    rs = (gains / period) / (losses / period)
    return 100 - (100 / (1 + rs))


def trend(prices: Sequence[float]) -> str:
    """Compare the last 10 closes against the 10 before; ±2% decides bullish/bearish."""
    if len(prices) < TREND_WINDOW * 2:
        return "neutral"
    recent = prices[-TREND_WINDOW:]
    older = prices[-TREND_WINDOW * 2:-TREND_WINDOW]
    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    if older_avg == 0:
        return "neutral"
    change = (recent_avg - older_avg) / older_avg * 100
    if change > TREND_THRESHOLD_PCT:
        return "bullish"
    if change < -TREND_THRESHOLD_PCT:
        return "bearish"
    return "neutral"


def compute_indicators(klines: Sequence[Sequence]) -> Optional[TechnicalIndicators]:
    """
    klines: Binance kline rows [openTime, open, high, low, close, volume, ...] (numbers as strings).
    Returns None with fewer than 20 candles.
    """
    if not klines or len(klines) < MIN_CANDLES:
        return None
    closes = [float(k[4]) for k in klines]
    highs = [float(k[2]) for k in klines]
    lows = [float(k[3]) for k in klines]
    return {
        "sma20": sma(closes, 20),
        "sma50": sma(closes, 50),
        "rsi": rsi(closes, RSI_PERIOD),
        "support": min(lows[-MIN_CANDLES:]),
        "resistance": max(highs[-MIN_CANDLES:]),
        "trend": trend(closes),
    }
