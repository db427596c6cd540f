"""Chat store: identity scoping, ordering, titles and atomic deletes on in-memory SQLite."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from perpology.core.errors import NotFoundOrForbidden, PersistenceError, ValidationError
from perpology.models.chat import Chat
from perpology.models.message import Message
from perpology.services import chat_store

OWNER = "wallet-a"
OTHER = "wallet-b"


def test_create_chat_defaults_title(db):
    chat = chat_store.create_chat(db, OWNER)
    assert len(chat.id) == 32
    assert chat.title == "New Chat"
    assert chat.owner_identity == OWNER


def test_create_chat_requires_identity(db):
    with pytest.raises(ValidationError):
        chat_store.create_chat(db, "  ")


def test_list_chats_most_recently_updated_first(db):
    first = chat_store.create_chat(db, OWNER, "first")
    second = chat_store.create_chat(db, OWNER, "second")
    chat_store.create_chat(db, OTHER, "not mine")
    chat_store.append_message(db, first.id, OWNER, "user", "bump")

    chats = chat_store.list_chats(db, OWNER)

    assert [c.id for c in chats] == [first.id, second.id]


def test_get_chat_from_another_identity_is_not_found(db):
    chat = chat_store.create_chat(db, OTHER)
    with pytest.raises(NotFoundOrForbidden):
        chat_store.get_chat(db, chat.id, OWNER)
    with pytest.raises(NotFoundOrForbidden):
        chat_store.append_message(db, chat.id, OWNER, "user", "hi")
    with pytest.raises(NotFoundOrForbidden):
        chat_store.rename_chat(db, chat.id, OWNER, "mine now")
    with pytest.raises(NotFoundOrForbidden):
        chat_store.delete_chat(db, chat.id, OWNER)
    assert chat_store.get_chat(db, chat.id, OTHER)["id"] == chat.id


def test_messages_ordered_even_with_identical_clock(db, monkeypatch):
    fixed = datetime(2026, 1, 1, tzinfo=timezone.utc)
    monkeypatch.setattr(chat_store, "_now", lambda: fixed)
    chat = chat_store.create_chat(db, OWNER)
    for i in range(5):
        chat_store.append_message(db, chat.id, OWNER, "user" if i % 2 == 0 else "assistant", f"m{i}")

    messages = chat_store.list_messages(db, chat.id, OWNER)

    assert [m.content for m in messages] == ["m0", "m1", "m2", "m3", "m4"]
    stamps = [m.created_at for m in messages]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


def test_append_touches_updated_at_and_keeps_metadata(db):
    chat = chat_store.create_chat(db, OWNER)
    before = chat_store._as_utc(chat.updated_at)
    message = chat_store.append_message(
        db, chat.id, OWNER, "assistant", "BTC long", {"hasChart": True, "cryptoSymbols": ["BTC"]}
    )
    db.refresh(chat)
    assert chat_store._as_utc(chat.updated_at) >= before
    data = chat_store.message_to_dict(message)
    assert data["metadata"] == {"hasChart": True, "cryptoSymbols": ["BTC"]}
    assert data["chatId"] == chat.id


@pytest.mark.parametrize("role,content", [("system", "x"), ("user", ""), ("assistant", None)])
def test_append_validates_role_and_content(db, role, content):
    chat = chat_store.create_chat(db, OWNER)
    with pytest.raises(ValidationError):
        chat_store.append_message(db, chat.id, OWNER, role, content)


def test_get_chat_returns_messages_oldest_first(db):
    chat = chat_store.create_chat(db, OWNER, "t")
    chat_store.append_message(db, chat.id, OWNER, "user", "question")
    chat_store.append_message(db, chat.id, OWNER, "assistant", "answer")

    data = chat_store.get_chat(db, chat.id, OWNER)

    assert data["ownerIdentity"] == OWNER
    assert [(m["role"], m["content"]) for m in data["messages"]] == [("user", "question"), ("assistant", "answer")]
    assert data["createdAt"].endswith("+00:00")


def test_rename_requires_title(db):
    chat = chat_store.create_chat(db, OWNER)
    with pytest.raises(ValidationError):
        chat_store.rename_chat(db, chat.id, OWNER, "")
    assert chat_store.rename_chat(db, chat.id, OWNER, "Renamed").title == "Renamed"


def test_delete_removes_chat_and_messages(db):
    chat = chat_store.create_chat(db, OWNER)
    chat_store.append_message(db, chat.id, OWNER, "user", "hi")

    chat_store.delete_chat(db, chat.id, OWNER)

    assert chat_store.list_chats(db, OWNER) == []
    with pytest.raises(NotFoundOrForbidden):
        chat_store.get_chat(db, chat.id, OWNER)
    assert db.query(Message).count() == 0


def test_failed_delete_leaves_no_partial_state(db, monkeypatch):
    chat = chat_store.create_chat(db, OWNER)
    chat_id = chat.id
    chat_store.append_message(db, chat_id, OWNER, "user", "hi")
    chat_store.append_message(db, chat_id, OWNER, "assistant", "hello")

    def boom(instance):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(db, "delete", boom)
    with pytest.raises(PersistenceError):
        chat_store.delete_chat(db, chat_id, OWNER)
    monkeypatch.undo()

    assert db.query(Chat).filter(Chat.id == chat_id).count() == 1
    assert len(chat_store.get_chat(db, chat_id, OWNER)["messages"]) == 2


@pytest.mark.parametrize(
    "text,expected",
    [
        (None, "New Chat"),
        ("   ", "New Chat"),
        ("What is BTC doing?", "What is BTC doing?"),
        ("a" * 50, "a" * 50),
        ("x" * 49, "x" * 49),
        ("b" * 51, "b" * 50 + "..."),
        ("c" * 80, "c" * 50 + "..."),
        ("  padded  ", "padded"),
    ],
)
def test_generate_title(text, expected):
    title = chat_store.generate_title(text)
    assert title == expected
    assert len(title) <= 53
