"""
Orchestrator: the "send message" transaction. Binds the chat store, market gateway and completion service.
"""
import logging
from typing import Any, Mapping, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from perpology.core.errors import ValidationError
from perpology.services import chat_store
from perpology.services.completion import ChatCompletionService
from perpology.services.market import MarketDataGateway

logger = logging.getLogger(__name__)


def _require_message(message: Optional[str]) -> str:
    if message is None or not message.strip():
        raise ValidationError("Message is required")
    return message


async def _market_context(gateway: MarketDataGateway, message: str) -> Optional[dict[str, Any]]:
    """Live market context for the message; feed failures degrade to None."""
    try:
        return await run_in_threadpool(gateway.relevant_context, message)
    except Exception:
        logger.warning("Market context unavailable", exc_info=True)
        return None


async def send_message(
    db: Session,
    completion: ChatCompletionService,
    gateway: MarketDataGateway,
    *,
    message: Optional[str],
    owner_identity: Optional[str],
    chat_id: Optional[str] = None,
    is_new_chat: bool = False,
) -> dict[str, Any]:
    """
    Persist the user message, generate the assistant reply with market context and persist it.
    Creates the chat (titled from the message) when is_new_chat is set or no chat_id is given.
    A failed generation leaves the user message persisted and raises GenerationFailed.
    """
    message = _require_message(message)
    if owner_identity is None or not owner_identity.strip():
        raise ValidationError("Wallet address is required")

    if is_new_chat or not chat_id:
        chat = chat_store.create_chat(db, owner_identity, chat_store.generate_title(message))
        history: list[dict[str, str]] = []
    else:
        chat = chat_store.get_chat_record(db, chat_id, owner_identity)
        history = [
            {"role": m.role, "content": m.content}
            for m in chat_store.list_messages(db, chat.id, owner_identity)
        ]

    chat_store.append_message(db, chat.id, owner_identity, "user", message)
    context = await _market_context(gateway, message)
    result = await completion.generate(message, history, context)
    metadata = result.metadata.to_dict()
    chat_store.append_message(db, chat.id, owner_identity, "assistant", result.content, metadata)
    logger.info("Chat %s: replied (%d history turns, context=%s)", chat.id, len(history), context is not None)
    return {
        "success": True,
        "response": result.content,
        "metadata": metadata,
        "chatId": chat.id,
    }


async def chat(
    completion: ChatCompletionService,
    gateway: MarketDataGateway,
    *,
    message: Optional[str],
    chat_history: Sequence[Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Stateless chat: history comes from the caller, nothing is persisted."""
    message = _require_message(message)
    context = await _market_context(gateway, message)
    result = await completion.generate(message, chat_history or [], context)
    return {
        "success": True,
        "response": result.content,
        "metadata": result.metadata.to_dict(),
    }
