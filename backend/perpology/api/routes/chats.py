"""
Chat history endpoints: list, create, load, rename, delete and append, all scoped by owner identity.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from perpology.db.session import get_db
from perpology.services import chat_store

router = APIRouter()


class CreateChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    owner_identity: Optional[str] = None
    title: Optional[str] = None


class RenameChatRequest(BaseModel):
    title: Optional[str] = None


class AppendMessageRequest(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


@router.get("/{owner_identity}")
def list_chats(owner_identity: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Chats for this identity, most recently updated first."""
    chats = chat_store.list_chats(db, owner_identity)
    return {"success": True, "chats": [chat_store.chat_to_dict(c) for c in chats]}


@router.post("")
def create_chat(body: CreateChatRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    chat = chat_store.create_chat(db, body.owner_identity, body.title)
    return {"success": True, "chat": chat_store.chat_to_dict(chat)}


@router.get("/{owner_identity}/{chat_id}")
def get_chat(owner_identity: str, chat_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Chat with its messages, oldest first."""
    return {"success": True, "chat": chat_store.get_chat(db, chat_id, owner_identity)}


@router.post("/{owner_identity}/{chat_id}/messages")
def append_message(
    owner_identity: str,
    chat_id: str,
    body: AppendMessageRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    message = chat_store.append_message(
        db, chat_id, owner_identity, body.role, body.content, body.metadata
    )
    return {"success": True, "message": chat_store.message_to_dict(message)}


@router.put("/{owner_identity}/{chat_id}")
def rename_chat(
    owner_identity: str,
    chat_id: str,
    body: RenameChatRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    chat = chat_store.rename_chat(db, chat_id, owner_identity, body.title)
    return {"success": True, "chat": chat_store.chat_to_dict(chat)}


@router.delete("/{owner_identity}/{chat_id}")
def delete_chat(owner_identity: str, chat_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    chat_store.delete_chat(db, chat_id, owner_identity)
    return {"success": True}
