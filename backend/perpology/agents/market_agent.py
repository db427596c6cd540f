"""Market agent: crypto-futures commentary. Instructions loaded from market_agent_instructions.md."""
import json
from datetime import date
from pathlib import Path
from typing import Any

from pydantic_ai import Agent, RunContext
from pydantic_ai.settings import ModelSettings

from perpology.agents.deps import MarketDeps
from perpology.config import settings
from perpology.core.constants import MARKET_CONTEXT_PREFIX
from perpology.toolsets.market.tools import market_toolset

_INSTRUCTIONS_PATH = Path(__file__).resolve().parent / "market_agent_instructions.md"
_today = date.today().isoformat()
SYSTEM_PROMPT = _INSTRUCTIONS_PATH.read_text().strip().replace("{{current_date}}", _today)

MODEL_SETTINGS = ModelSettings(
    max_tokens=settings.ai_max_tokens,
    temperature=settings.ai_temperature,
    presence_penalty=0.1,
    frequency_penalty=0.1,
)


def market_context_instructions(ctx: RunContext[MarketDeps]) -> str:
    """This message's market data as a system instruction; empty when nothing was fetched."""
    if not ctx.deps.market_context:
        return ""
    return MARKET_CONTEXT_PREFIX + json.dumps(ctx.deps.market_context, indent=2)


def build_agent(model: Any = None) -> Agent[MarketDeps, str]:
    """Agent bound to the configured model, or to `model` (e.g. a test FunctionModel)."""
    agent = Agent(
        model=model or settings.ai_model,
        deps_type=MarketDeps,
        instructions=SYSTEM_PROMPT,
        toolsets=[market_toolset],
        retries=1,
        model_settings=MODEL_SETTINGS,
        # Resolve the provider on first run so imports work without OPENAI_API_KEY
        defer_model_check=True,
    )
    agent.instructions(market_context_instructions)
    return agent


agent = build_agent()
