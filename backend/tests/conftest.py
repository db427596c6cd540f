"""
Shared fixtures: in-memory SQLite, canned market feeds over httpx.MockTransport, a scripted
pydantic-ai FunctionModel and a FastAPI TestClient with dependency overrides.
"""
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import perpology.models  # noqa: F401  register tables
from perpology.agents.market_agent import build_agent
from perpology.db.base import Base
from perpology.services.completion import ChatCompletionService
from perpology.services.market import MarketConfig, MarketDataGateway, MarketHttpClient, TTLCache

SIGNAL_REPLY = (
    "BTC looks constructive here. Entry: $42,000 stop loss $40,500 "
    "take profit $45,000, go long. Source: https://www.coindesk.com/markets"
)


class FakeClock:
    """Millisecond clock advanced by hand; optionally by `step` on every read."""

    def __init__(self, now: int = 1_000_000, step: int = 0) -> None:
        self.now = now
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value

    def advance(self, ms: int) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Market feeds
# ---------------------------------------------------------------------------


def _klines(count: int = 30, start: float = 40000.0, step: float = 100.0) -> list[list[Any]]:
    rows = []
    for i in range(count):
        close = start + i * step
        rows.append([i, str(close - 50), str(close + 200), str(close - 300), str(close), "10"])
    return rows


class MarketFeeds:
    """Canned Binance / CoinGecko / Fear & Greed responses; records every request path."""

    def __init__(self) -> None:
        self.requests: list[str] = []
        self.binance_status: Optional[int] = None  # force an error status for Binance
        self.coingecko_status: Optional[int] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = urlparse(str(request.url))
        self.requests.append(url.path)
        params = dict(request.url.params)
        if url.hostname == "api.binance.com":
            if self.binance_status:
                return httpx.Response(self.binance_status, json={"msg": "restricted"})
            if params.get("symbol") not in ("BTCUSDT", "ETHUSDT", "SOLUSDT"):
                return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})
            if url.path.endswith("/ticker/24hr"):
                return httpx.Response(
                    200,
                    json={
                        "lastPrice": "42000.50",
                        "priceChangePercent": "1.50",
                        "volume": "1234.5",
                        "highPrice": "43000.00",
                        "lowPrice": "41000.00",
                    },
                )
            if url.path.endswith("/klines"):
                return httpx.Response(200, json=_klines())
        if url.hostname == "api.coingecko.com":
            if self.coingecko_status:
                return httpx.Response(self.coingecko_status, json={"error": "rate limited"})
            if url.path.endswith("/simple/price"):
                coin = params.get("ids")
                return httpx.Response(
                    200,
                    json={
                        coin: {
                            "usd": 42001.0,
                            "usd_24h_change": 1.4,
                            "usd_24h_vol": 9.1e9,
                            "usd_market_cap": 8.2e11,
                        }
                    },
                )
            if url.path.endswith("/global"):
                return httpx.Response(
                    200,
                    json={
                        "data": {
                            "total_market_cap": {"usd": 1.7e12},
                            "total_volume": {"usd": 8.0e10},
                            "market_cap_percentage": {"btc": 52.1, "eth": 16.8},
                        }
                    },
                )
        if url.hostname == "api.alternative.me":
            return httpx.Response(200, json={"data": [{"value": "61", "value_classification": "Greed"}]})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def market_feeds() -> MarketFeeds:
    return MarketFeeds()


@pytest.fixture
def market_config() -> MarketConfig:
    return MarketConfig(
        binance_base_url="https://api.binance.com/api/v3",
        coingecko_base_url="https://api.coingecko.com/api/v3",
        fear_greed_url="https://api.alternative.me/fng/",
        timeout=1.0,
        cache_ttl_seconds=30.0,
    )


@pytest.fixture
def market_clock() -> FakeClock:
    """Seconds clock for the market cache."""
    return FakeClock(now=0)


@pytest.fixture
def gateway(market_feeds, market_config, market_clock) -> MarketDataGateway:
    client = MarketHttpClient(market_config, transport=httpx.MockTransport(market_feeds.handler))
    cache = TTLCache(market_config.cache_ttl_seconds, clock=market_clock)
    return MarketDataGateway(market_config, client=client, cache=cache)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class ScriptedModel:
    """
    FunctionModel backed by a list of responders; each model request pops the next one
    (the last one repeats). A responder is a string reply, a ModelResponse, an exception or a callable.
    """

    def __init__(self, *responders: Any) -> None:
        self.responders = list(responders) or ["Markets are calm today."]
        self.calls: list[tuple[list[ModelMessage], AgentInfo]] = []
        self.model = FunctionModel(self._respond)

    def _respond(self, messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        self.calls.append((messages, info))
        index = min(len(self.calls) - 1, len(self.responders) - 1)
        responder = self.responders[index]
        if isinstance(responder, BaseException):
            raise responder
        if callable(responder):
            responder = responder(messages, info)
        if isinstance(responder, ModelResponse):
            return responder
        return ModelResponse(parts=[TextPart(content=responder)])


@pytest.fixture
def scripted_model() -> ScriptedModel:
    return ScriptedModel(SIGNAL_REPLY)


@pytest.fixture
def completion_service(gateway, scripted_model) -> ChatCompletionService:
    return ChatCompletionService(gateway, agent=build_agent(scripted_model.model))


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


@pytest.fixture
def client(db, gateway, completion_service):
    """TestClient without lifespan (tables come from the in-memory engine)."""
    from perpology.api.deps import get_completion_service, get_market_gateway
    from perpology.db.session import get_db
    from perpology.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_market_gateway] = lambda: gateway
    app.dependency_overrides[get_completion_service] = lambda: completion_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def override_completion(app_client: TestClient, service: ChatCompletionService) -> None:
    from perpology.api.deps import get_completion_service

    app_client.app.dependency_overrides[get_completion_service] = lambda: service

