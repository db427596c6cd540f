"""
Chat completion: one model run per user message with trimmed history, the market context
(rendered into the agent instructions) and at most one live-price tool round. Output is
sanitised (no markdown headers or hashtags) and enriched with ResponseMetadata.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from pydantic_ai import Agent
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.usage import UsageLimits

from perpology.agents.deps import MarketDeps
from perpology.core.constants import FALLBACK_GREETING, HISTORY_TURN_LIMIT, MAX_MODEL_REQUESTS
from perpology.core.errors import GenerationFailed
from perpology.services.market import MarketDataGateway
from perpology.services.metadata import ResponseMetadata, extract

logger = logging.getLogger(__name__)

_HEADER_LINE_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+.*$", re.MULTILINE)
_HASHES_RE = re.compile(r"#+")
_EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")


def sanitize_response(text: Any) -> str:
    """
    Remove markdown header lines, strip leftover '#' sigils, collapse 3+ newlines to 2 and trim.
    Idempotent: sanitize_response(sanitize_response(x)) == sanitize_response(x).
    Empty or non-text output becomes the fallback greeting.
    """
    if not isinstance(text, str):
        return FALLBACK_GREETING
    out = _HEADER_LINE_RE.sub("", text)
    out = _HASHES_RE.sub("", out)
    out = _EXTRA_NEWLINES_RE.sub("\n\n", out)
    out = out.strip()
    return out or FALLBACK_GREETING


def build_message_history(history: Sequence[Mapping[str, Any]] | None) -> list[ModelMessage]:
    """Last HISTORY_TURN_LIMIT {role, content} turns as pydantic-ai messages, oldest dropped first."""
    messages: list[ModelMessage] = []
    turns = list(history or [])[-HISTORY_TURN_LIMIT:]
    for turn in turns:
        role = turn.get("role")
        content = turn.get("content")
        if not isinstance(content, str) or not content:
            continue
        if role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=content)]))
        elif role == "assistant":
            messages.append(ModelResponse(parts=[TextPart(content=content)]))
    return messages


@dataclass
class CompletionResult:
    content: str
    metadata: ResponseMetadata


class ChatCompletionService:
    """Runs the market agent for one user message. No retries; provider errors become GenerationFailed."""

    def __init__(self, gateway: MarketDataGateway, agent: Agent[MarketDeps, str] | None = None) -> None:
        if agent is None:
            from perpology.agents.market_agent import agent as market_agent

            agent = market_agent
        self._agent = agent
        self._gateway = gateway

    async def generate(
        self,
        user_text: str,
        history: Sequence[Mapping[str, Any]] | None = None,
        market_context: Optional[dict[str, Any]] = None,
    ) -> CompletionResult:
        deps = MarketDeps(self._gateway, market_context=market_context)
        try:
            result = await self._agent.run(
                user_text,
                deps=deps,
                message_history=build_message_history(history),
                usage_limits=UsageLimits(request_limit=MAX_MODEL_REQUESTS),
            )
        except Exception as e:
            logger.exception("Completion failed")
            raise GenerationFailed("Failed to generate AI response", details=str(e)) from e

        content = sanitize_response(result.output)
        return CompletionResult(content=content, metadata=extract(content, user_text))
