"""Market gateway against canned Binance / CoinGecko / Fear & Greed feeds."""
from perpology.services.market import extract_symbols
from perpology.services.market.indicators import compute_indicators, rsi, trend

from conftest import _klines


def test_snapshot_merges_binance_and_coingecko(gateway):
    data = gateway.snapshot("btc")

    assert data["symbol"] == "BTC"
    assert data["price"] == 42000.5  # Binance wins
    assert data["change24h"] == 1.5
    assert data["marketCap"] == 8.2e11  # CoinGecko only
    assert data["high24h"] == 43000.0
    assert data["low24h"] == 41000.0
    assert data["technicalIndicators"]["trend"] == "bullish"


def test_snapshot_served_from_cache_within_ttl(gateway, market_feeds, market_clock):
    gateway.snapshot("BTC")
    fetched = len(market_feeds.requests)
    market_clock.advance(29)

    again = gateway.snapshot("BTC")

    assert again["price"] == 42000.5
    assert len(market_feeds.requests) == fetched


def test_snapshot_refetched_after_ttl(gateway, market_feeds, market_clock):
    gateway.snapshot("BTC")
    fetched = len(market_feeds.requests)
    market_clock.advance(30)

    gateway.snapshot("BTC")

    assert len(market_feeds.requests) == fetched * 2


def test_restricted_binance_falls_back_to_coingecko(gateway, market_feeds):
    market_feeds.binance_status = 451

    data = gateway.snapshot("BTC")

    assert data["price"] == 42001.0
    assert data["change24h"] == 1.4
    assert data["high24h"] is None
    assert data["technicalIndicators"] is None


def test_snapshot_none_when_every_feed_fails(gateway, market_feeds):
    market_feeds.binance_status = 500
    market_feeds.coingecko_status = 429

    assert gateway.snapshot("BTC") is None
    context = gateway.relevant_context("how is BTC?")
    assert context["cryptoData"] is None
    assert context["marketOverview"] is None
    assert context["timestamp"]


def test_unknown_symbol_without_coingecko_id(gateway):
    assert gateway.snapshot("PEPE") is None


def test_market_overview(gateway, market_feeds, market_clock):
    overview = gateway.market_overview()

    assert overview["totalMarketCap"] == 1.7e12
    assert overview["btcDominance"] == 52.1
    assert overview["fearGreedIndex"] == {"value": 61, "classification": "Greed"}

    fetched = len(market_feeds.requests)
    gateway.market_overview()
    assert len(market_feeds.requests) == fetched


def test_relevant_context_from_names_and_tickers(gateway):
    context = gateway.relevant_context("thoughts on bitcoin and sol today?")

    assert set(context) == {"cryptoData", "marketOverview", "timestamp", "requiresRealTimeData"}
    assert set(context["cryptoData"]) == {"BTC", "SOL"}
    assert context["cryptoData"]["SOL"]["symbol"] == "SOL"
    assert context["marketOverview"]["btcDominance"] == 52.1


def test_relevant_context_caps_symbols(gateway):
    context = gateway.relevant_context("BTC ETH SOL ADA")
    assert set(context["cryptoData"]) == {"BTC", "ETH", "SOL"}


def test_relevant_context_without_symbols_still_has_overview(gateway, market_feeds):
    context = gateway.relevant_context("How is overall market sentiment today?")

    assert context["cryptoData"] is None
    assert context["marketOverview"]["fearGreedIndex"] == {"value": 61, "classification": "Greed"}
    assert context["timestamp"]
    assert not any(path.endswith(("/ticker/24hr", "/klines", "/simple/price")) for path in market_feeds.requests)


def test_clear_cache_forces_refetch(gateway, market_feeds):
    gateway.snapshot("ETH")
    fetched = len(market_feeds.requests)
    gateway.clear_cache()
    gateway.snapshot("ETH")
    assert len(market_feeds.requests) == fetched * 2


def test_chart_embed(gateway):
    embed = gateway.chart(" btc ")

    assert embed["symbol"] == "BTC"
    assert embed["exchange"] == "BINANCE"
    assert embed["interval"] == "1H"
    assert embed["embedUrl"].startswith("https://www.tradingview.com/widgetembed/?")
    assert "BTCUSDT" in embed["embedUrl"]
    assert "theme=dark" in embed["embedUrl"]


def test_extract_symbols_maps_aliases():
    assert extract_symbols("Ethereum vs ETH vs bitcoin, maybe Polygon") == ["ETH", "BTC", "MATIC"]
    assert extract_symbols("nothing here") == []


def test_indicators_need_twenty_candles():
    assert compute_indicators(_klines(19)) is None


def test_indicators_on_rising_series():
    indicators = compute_indicators(_klines(30))

    assert indicators["rsi"] == 100.0
    assert indicators["sma50"] is None
    assert indicators["sma20"] == sum(40000.0 + i * 100 for i in range(10, 30)) / 20
    assert indicators["support"] == 40700.0
    assert indicators["resistance"] == 43100.0
    assert indicators["trend"] == "bullish"


def test_rsi_and_trend_edge_cases():
    flat = [100.0] * 20
    assert rsi(flat) == 50.0
    assert trend(flat) == "neutral"
    falling = [200.0 - i for i in range(20)]
    assert rsi(falling) == 0.0
    assert trend(falling) == "bearish"
    assert rsi([1.0, 2.0]) is None
