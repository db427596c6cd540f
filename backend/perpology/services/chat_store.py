"""
Persistent chat store: identity-scoped chats and their ordered messages.

Every operation is scoped by (chat_id, owner_identity); a chat that exists but belongs to
another identity is indistinguishable from a missing one (NotFoundOrForbidden).
SQLAlchemy failures are rolled back and surfaced as PersistenceError.
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from perpology.core.constants import CHAT_TITLE_ELLIPSIS, CHAT_TITLE_MAX_CHARS, DEFAULT_CHAT_TITLE
from perpology.core.errors import NotFoundOrForbidden, PersistenceError, ValidationError
from perpology.models.chat import Chat
from perpology.models.message import Message

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite returns naive datetimes even for timezone=True columns
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(dt: Optional[datetime]) -> Optional[str]:
    dt = _as_utc(dt)
    return dt.isoformat() if dt else None


@contextmanager
def _transaction(db: Session, action: str) -> Iterator[None]:
    """Commit on success; on any database failure roll back and raise PersistenceError."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Chat store %s failed", action)
        raise PersistenceError(f"{action} failed", details=str(e)) from e


def _require(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required")
    return str(value).strip()


def generate_title(first_message: Optional[str]) -> str:
    """Chat title from the first user message: kept whole up to 50 characters, else the first 50 plus an ellipsis."""
    text = (first_message or "").strip()
    if not text:
        return DEFAULT_CHAT_TITLE
    if len(text) <= CHAT_TITLE_MAX_CHARS:
        return text
    return text[:CHAT_TITLE_MAX_CHARS] + CHAT_TITLE_ELLIPSIS


# ---------------------------------------------------------------------------
# Serialisers (camelCase API shapes)
# ---------------------------------------------------------------------------


def chat_to_dict(chat: Chat) -> dict[str, Any]:
    return {
        "id": chat.id,
        "ownerIdentity": chat.owner_identity,
        "title": chat.title,
        "createdAt": _iso(chat.created_at),
        "updatedAt": _iso(chat.updated_at),
    }


def message_to_dict(message: Message) -> dict[str, Any]:
    out = {
        "id": message.id,
        "chatId": message.chat_id,
        "role": message.role,
        "content": message.content,
        "createdAt": _iso(message.created_at),
    }
    if message.message_metadata is not None:
        out["metadata"] = message.message_metadata
    return out


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------


def get_chat_record(db: Session, chat_id: str, owner_identity: str) -> Chat:
    """Chat row scoped to owner; NotFoundOrForbidden when missing or owned by someone else."""
    owner_identity = _require(owner_identity, "ownerIdentity")
    if not chat_id:
        raise NotFoundOrForbidden("Chat not found")
    try:
        row = (
            db.query(Chat)
            .filter(Chat.id == chat_id, Chat.owner_identity == owner_identity)
            .first()
        )
    except SQLAlchemyError as e:
        logger.exception("Chat lookup failed for chat_id=%s", chat_id)
        raise PersistenceError("lookup failed", details=str(e)) from e
    if row is None:
        raise NotFoundOrForbidden("Chat not found", details={"chat_id": chat_id})
    return row


def create_chat(db: Session, owner_identity: str, title: Optional[str] = None) -> Chat:
    owner_identity = _require(owner_identity, "ownerIdentity")
    now = _now()
    chat = Chat(
        id=uuid.uuid4().hex,
        owner_identity=owner_identity,
        title=(title or "").strip() or DEFAULT_CHAT_TITLE,
        created_at=now,
        updated_at=now,
    )
    with _transaction(db, "create chat"):
        db.add(chat)
    db.refresh(chat)
    logger.info("Created chat %s for %s", chat.id, owner_identity)
    return chat


def list_chats(db: Session, owner_identity: str) -> list[Chat]:
    """Owner's chats, most recently updated first."""
    owner_identity = _require(owner_identity, "ownerIdentity")
    try:
        return (
            db.query(Chat)
            .filter(Chat.owner_identity == owner_identity)
            .order_by(Chat.updated_at.desc(), Chat.created_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("List chats failed")
        raise PersistenceError("list failed", details=str(e)) from e


def list_messages(db: Session, chat_id: str, owner_identity: str) -> list[Message]:
    """Messages oldest first, ordered by (created_at, id)."""
    chat = get_chat_record(db, chat_id, owner_identity)
    try:
        return (
            db.query(Message)
            .filter(Message.chat_id == chat.id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("List messages failed for chat_id=%s", chat_id)
        raise PersistenceError("list messages failed", details=str(e)) from e


def get_chat(db: Session, chat_id: str, owner_identity: str) -> dict[str, Any]:
    """Chat with its messages (oldest first) as the API shape."""
    chat = get_chat_record(db, chat_id, owner_identity)
    messages = list_messages(db, chat_id, owner_identity)
    out = chat_to_dict(chat)
    out["messages"] = [message_to_dict(m) for m in messages]
    return out


def rename_chat(db: Session, chat_id: str, owner_identity: str, title: Optional[str]) -> Chat:
    title = _require(title, "title")
    chat = get_chat_record(db, chat_id, owner_identity)
    with _transaction(db, "rename chat"):
        chat.title = title
        chat.updated_at = _now()
    db.refresh(chat)
    return chat


def delete_chat(db: Session, chat_id: str, owner_identity: str) -> None:
    """Delete the chat and all its messages in one transaction; nothing is removed on failure."""
    chat = get_chat_record(db, chat_id, owner_identity)
    with _transaction(db, "delete chat"):
        db.query(Message).filter(Message.chat_id == chat.id).delete(synchronize_session=False)
        db.delete(chat)
    logger.info("Deleted chat %s", chat_id)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def _next_created_at(db: Session, chat_id: str) -> datetime:
    now = _now()
    last = _as_utc(
        db.query(func.max(Message.created_at)).filter(Message.chat_id == chat_id).scalar()
    )
    if last is not None and now <= last:
        return last + timedelta(microseconds=1)
    return now


def append_message(
    db: Session,
    chat_id: str,
    owner_identity: str,
    role: str,
    content: Optional[str],
    metadata: Optional[dict[str, Any]] = None,
) -> Message:
    """Append one immutable message and touch the chat's updated_at."""
    if role not in ROLES:
        raise ValidationError("role must be 'user' or 'assistant'")
    _require(content, "content")
    chat = get_chat_record(db, chat_id, owner_identity)
    with _transaction(db, "append message"):
        created_at = _next_created_at(db, chat.id)
        message = Message(
            chat_id=chat.id,
            role=role,
            content=content,
            message_metadata=metadata,
            created_at=created_at,
        )
        db.add(message)
        chat.updated_at = created_at
    db.refresh(message)
    return message
