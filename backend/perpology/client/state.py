"""
Client session state: an immutable value; every transition returns a new state.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from perpology.core.constants import RATE_LIMIT_WINDOW_MS


class ControllerPhase(str, Enum):
    IDLE = "idle"
    RATE_LIMITED = "rate-limited"
    AWAITING_RESPONSE = "awaiting-response"


@dataclass(frozen=True)
class ChatTurn:
    role: str  # user | assistant
    content: str


@dataclass(frozen=True)
class ClientSessionState:
    wallet_address: Optional[str] = None
    current_chat_id: Optional[str] = None
    chat_history: tuple[ChatTurn, ...] = ()
    is_rate_limited: bool = False
    last_message_timestamp: Optional[int] = None  # ms, controller clock
    is_thinking: bool = False
    chats: tuple[dict[str, Any], ...] = field(default=())

    @property
    def phase(self) -> ControllerPhase:
        if self.is_thinking:
            return ControllerPhase.AWAITING_RESPONSE
        if self.is_rate_limited:
            return ControllerPhase.RATE_LIMITED
        return ControllerPhase.IDLE

    def cooldown_active(self, now_ms: int) -> bool:
        if self.is_rate_limited:
            return True
        return (
            self.last_message_timestamp is not None
            and now_ms - self.last_message_timestamp < RATE_LIMIT_WINDOW_MS
        )

    def bind_identity(self, wallet_address: str) -> ClientSessionState:
        return replace(self, wallet_address=wallet_address)

    def accept_send(self, text: str, now_ms: int) -> ClientSessionState:
        return replace(
            self,
            last_message_timestamp=now_ms,
            is_rate_limited=True,
            is_thinking=True,
            chat_history=self.chat_history + (ChatTurn("user", text),),
        )

    def with_chat_id(self, chat_id: str) -> ClientSessionState:
        return replace(self, current_chat_id=chat_id)

    def with_assistant(self, content: str) -> ClientSessionState:
        return replace(self, chat_history=self.chat_history + (ChatTurn("assistant", content),))

    def response_settled(self) -> ClientSessionState:
        return replace(self, is_thinking=False)

    def cooldown_finished(self) -> ClientSessionState:
        return replace(self, is_rate_limited=False)

    def with_chats(self, chats: list[dict[str, Any]]) -> ClientSessionState:
        return replace(self, chats=tuple(chats))

    def new_chat(self) -> ClientSessionState:
        """Fresh conversation: same identity, chat list and cooldown."""
        return replace(self, current_chat_id=None, chat_history=(), is_thinking=False)

    def load_chat(self, chat_id: str, messages: list[dict[str, Any]]) -> ClientSessionState:
        """Replace the conversation wholesale with a stored chat."""
        history = tuple(ChatTurn(m["role"], m["content"]) for m in messages)
        return replace(self, current_chat_id=chat_id, chat_history=history, is_thinking=False)

    def disconnected(self) -> ClientSessionState:
        """Drop identity and everything derived from it; the cooldown survives reconnects."""
        return ClientSessionState(
            is_rate_limited=self.is_rate_limited,
            last_message_timestamp=self.last_message_timestamp,
        )
