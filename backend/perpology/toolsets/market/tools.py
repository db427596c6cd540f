"""Market toolset: live price lookups the model can request once per user message."""
import logging
from typing import Any

from pydantic_ai import FunctionToolset, RunContext, Tool
from pydantic_ai.tools import ToolDefinition

from perpology.agents.deps import MarketDeps
from perpology.core.constants import MAX_TOOL_ROUNDS, TOOL_SYMBOL_LIMIT

logger = logging.getLogger(__name__)


def get_live_prices(ctx: RunContext[MarketDeps], symbols: list[str]) -> dict[str, Any]:
    """Live price, 24h change/volume and technical indicators for up to 5 crypto tickers, e.g. ["BTC", "SOL"]. Unknown or unavailable tickers map to null."""
    ctx.deps.price_lookups += 1
    wanted: list[str] = []
    for s in symbols or []:
        symbol = str(s).strip().upper()
        if symbol and symbol not in wanted:
            wanted.append(symbol)
    wanted = wanted[:TOOL_SYMBOL_LIMIT]
    logger.info("get_live_prices %s", wanted)
    if not wanted:
        return {"error": "Pass at least one ticker symbol, e.g. BTC."}
    return {symbol: ctx.deps.gateway.snapshot(symbol) for symbol in wanted}


async def _only_first_round(ctx: RunContext[MarketDeps], tool_def: ToolDefinition) -> ToolDefinition | None:
    if ctx.deps.price_lookups >= MAX_TOOL_ROUNDS:
        return None
    return tool_def


market_toolset = FunctionToolset(
    tools=[
        Tool(get_live_prices, prepare=_only_first_round),
    ],
)
