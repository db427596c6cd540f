"""
Rendering surface for the chat controller. A terminal UI, a test recorder or a web bridge implements it.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from perpology.client.countdown import CountdownPhase
from perpology.client.enrichment import Enrichments


class ChatView(ABC):
    @abstractmethod
    def show_landing(self) -> None: ...

    @abstractmethod
    def show_chat(self) -> None: ...

    @abstractmethod
    def alert(self, message: str) -> None: ...

    @abstractmethod
    async def confirm(self, prompt: str) -> bool: ...

    @abstractmethod
    def set_input_enabled(self, enabled: bool) -> None: ...

    @abstractmethod
    def append_message(self, role: str, content: str) -> None: ...

    @abstractmethod
    def clear_transcript(self) -> None: ...

    def render_transcript(self, messages: Sequence[dict[str, Any]]) -> None:
        self.clear_transcript()
        for m in messages:
            self.append_message(m["role"], m["content"])

    @abstractmethod
    def render_chat_list(self, chats: Sequence[dict[str, Any]], active_chat_id: Optional[str]) -> None: ...

    @abstractmethod
    def show_countdown(self, text: str, phase: CountdownPhase) -> None: ...

    @abstractmethod
    def hide_countdown(self) -> None: ...

    def pulse_countdown(self) -> None:
        """Transient cue that the cooldown is still running."""

    @abstractmethod
    def show_thinking(self, phrase: str) -> None: ...

    @abstractmethod
    def hide_thinking(self) -> None: ...

    @abstractmethod
    def reveal_enrichments(self, enrichments: Enrichments) -> None: ...

    def fill_chart(self, symbol: str, embed: dict[str, Any]) -> None:
        """Replace the chart placeholder with the embed (embedUrl, exchange, interval)."""

    def chart_unavailable(self, symbol: str) -> None:
        """Mark the chart placeholder as temporarily unavailable."""

    def show_wallet(self, address: Optional[str]) -> None:
        """Connected address, or None after disconnect."""
