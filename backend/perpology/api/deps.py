"""
Shared service providers for route handlers (overridable in tests via app.dependency_overrides).
"""
from functools import lru_cache

from perpology.services.completion import ChatCompletionService
from perpology.services.market import MarketDataGateway


@lru_cache()
def get_market_gateway() -> MarketDataGateway:
    return MarketDataGateway()


@lru_cache()
def get_completion_service() -> ChatCompletionService:
    return ChatCompletionService(get_market_gateway())
