"""
Chat endpoints: persistent send (creates/extends a stored chat) and stateless chat.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from perpology.api.deps import get_completion_service, get_market_gateway
from perpology.db.session import get_db
from perpology.orchestrator.orchestrator import chat as orchestrator_chat
from perpology.orchestrator.orchestrator import send_message as orchestrator_send
from perpology.services.completion import ChatCompletionService
from perpology.services.market import MarketDataGateway

router = APIRouter()
logger = logging.getLogger(__name__)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendMessageRequest(_CamelRequest):
    message: Optional[str] = None
    chat_id: Optional[str] = None  # omit (or set is_new_chat) to start a new chat
    owner_identity: Optional[str] = None  # wallet address
    is_new_chat: bool = False


class HistoryTurn(BaseModel):
    role: str
    content: str


class ChatRequest(_CamelRequest):
    message: Optional[str] = None
    chat_history: list[HistoryTurn] = []


@router.post("/send")
async def send(
    body: SendMessageRequest,
    db: Session = Depends(get_db),
    completion: ChatCompletionService = Depends(get_completion_service),
    gateway: MarketDataGateway = Depends(get_market_gateway),
) -> dict[str, Any]:
    """
    Send a message in a persisted chat. Returns the assistant reply, its metadata and the chat id
    (new when isNewChat is true or chatId is omitted).
    """
    return await orchestrator_send(
        db,
        completion,
        gateway,
        message=body.message,
        owner_identity=body.owner_identity,
        chat_id=body.chat_id,
        is_new_chat=body.is_new_chat,
    )


@router.post("")
async def chat(
    body: ChatRequest,
    completion: ChatCompletionService = Depends(get_completion_service),
    gateway: MarketDataGateway = Depends(get_market_gateway),
) -> dict[str, Any]:
    """Stateless chat: pass chatHistory for context; nothing is stored."""
    return await orchestrator_chat(
        completion,
        gateway,
        message=body.message,
        chat_history=[t.model_dump() for t in body.chat_history],
    )
