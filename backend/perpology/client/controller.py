"""
Client chat controller: wallet binding, rate-limited sends, thinking indicator, two-stage reveal
and history sidebar sync over the chat API.

Single-threaded asyncio. Timers (countdown, thinking cycler, reveal delay) are tasks cancelled when
their owning condition ends. Responses that arrive after the transcript was replaced
(new chat, chat load, disconnect) are dropped.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, Optional

from perpology.client.api_client import ChatApiClient, ChatApiError
from perpology.client.countdown import CountdownPhase, RateLimitCountdown
from perpology.client.enrichment import build_enrichments
from perpology.client.state import ClientSessionState, ControllerPhase
from perpology.client.thinking import ThinkingCycler, thinking_phrases_for
from perpology.client.view import ChatView
from perpology.client.wallet import WalletProvider, WalletUnavailable
from perpology.core.constants import (
    COUNTDOWN_TICK_SECONDS,
    ENRICHMENT_REVEAL_DELAY_SECONDS,
    MSG_CONNECTION_FAILED,
    MSG_SEND_FAILED,
    THINKING_CYCLE_SECONDS,
)

logger = logging.getLogger(__name__)

MSG_CONNECT_TO_CHAT = "Please connect your wallet to start chatting."
MSG_CONNECT_TO_START = "Please connect your wallet to start a new chat."
MSG_COOLDOWN_ACTIVE = "Please wait for the cooldown to finish before sending another message."
MSG_WALLET_FAILED = "Failed to connect wallet. Please try again."
MSG_LOAD_FAILED = "Failed to load chat. Please try again."
MSG_DELETE_FAILED = "Failed to delete chat. Please try again."
DELETE_CONFIRM_TEMPLATE = 'Are you sure you want to delete "{title}"?\n\nThis action cannot be undone.'


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ClientChatController:
    def __init__(
        self,
        api: ChatApiClient,
        view: ChatView,
        wallet: WalletProvider,
        *,
        clock: Callable[[], int] = monotonic_ms,
        tick_seconds: float = COUNTDOWN_TICK_SECONDS,
        thinking_interval: float = THINKING_CYCLE_SECONDS,
        reveal_delay: float = ENRICHMENT_REVEAL_DELAY_SECONDS,
    ) -> None:
        self._api = api
        self._view = view
        self._wallet = wallet
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._thinking_interval = thinking_interval
        self._reveal_delay = reveal_delay
        self.state = ClientSessionState()
        self._countdown: Optional[RateLimitCountdown] = None
        self._thinking: Optional[ThinkingCycler] = None
        self._thinking_token: Optional[int] = None  # send that owns the indicator
        self._tasks: set[asyncio.Task] = set()
        # Bumped whenever the transcript is replaced; in-flight sends compare against it.
        self._generation = 0
        self._send_seq = 0
        self._pending: set[int] = set()
        # Latest send in a chat that has no id yet; follow-ups wait for it to bind one.
        self._chat_binding: Optional[asyncio.Task] = None

    @property
    def phase(self) -> ControllerPhase:
        return self.state.phase

    # -- identity ----------------------------------------------------------

    async def bootstrap(self) -> None:
        """Restore a cached wallet session, if any."""
        if not self._wallet.is_connected():
            self._view.show_landing()
            return
        address = self._wallet.address()
        if address:
            await self._bind(address)

    async def connect_wallet(self) -> bool:
        try:
            address = await self._wallet.connect()
        except WalletUnavailable as e:
            self._view.alert(str(e))
            return False
        except Exception:
            logger.exception("Wallet connection failed")
            self._view.alert(MSG_WALLET_FAILED)
            return False
        await self._bind(address)
        return True

    async def _bind(self, address: str) -> None:
        self.state = self.state.bind_identity(address)
        self._view.show_wallet(address)
        await self.refresh_history()
        if self.state.chats:
            self._view.show_chat()

    def disconnect_wallet(self) -> None:
        self._replace_transcript()
        self.state = self.state.disconnected()
        self._view.show_wallet(None)
        self._view.clear_transcript()
        self._view.render_chat_list([], None)
        self._view.show_landing()

    # -- conversation ------------------------------------------------------

    def start_new_chat(self) -> bool:
        if not self.state.wallet_address:
            self._view.alert(MSG_CONNECT_TO_START)
            return False
        self._replace_transcript()
        self.state = self.state.new_chat()
        self._view.clear_transcript()
        self._view.show_chat()
        self._view.render_chat_list(list(self.state.chats), None)
        return True

    def submit(self, text: str) -> bool:
        """
        Accept a send when a wallet is bound and no cooldown is running. The request runs in the
        background; returns whether the send was accepted.
        """
        text = (text or "").strip()
        if not text:
            return False
        if not self.state.wallet_address:
            self._view.alert(MSG_CONNECT_TO_CHAT)
            return False
        now = self._clock()
        if self.state.cooldown_active(now):
            self._view.alert(MSG_COOLDOWN_ACTIVE)
            return False

        self._send_seq += 1
        token = self._send_seq
        self._pending.add(token)
        self.state = self.state.accept_send(text, now)
        self._start_countdown(now)
        self._view.set_input_enabled(False)
        self._view.append_message("user", text)
        self._start_thinking(text, token)

        chat_id = self.state.current_chat_id
        binding = None
        if chat_id is None and self._chat_binding is not None and not self._chat_binding.done():
            binding = self._chat_binding
        task = self._spawn(
            self._send(text, self.state.wallet_address, chat_id, self._generation, token, binding)
        )
        if chat_id is None:
            self._chat_binding = task
        return True

    def on_input_activity(self) -> None:
        if self.state.is_rate_limited:
            self._view.pulse_countdown()

    async def _send(
        self,
        text: str,
        owner: str,
        chat_id: Optional[str],
        generation: int,
        token: int,
        binding: Optional[asyncio.Task] = None,
    ) -> None:
        if binding is not None:
            # Earlier send in the same new chat; reuse the chat id it binds
            await asyncio.wait([binding])
            if generation != self._generation:
                return
            chat_id = self.state.current_chat_id

        data: Optional[dict[str, Any]]
        try:
            data = await self._api.send_message(
                text, owner_identity=owner, chat_id=chat_id, is_new_chat=chat_id is None
            )
        except ChatApiError as e:
            logger.warning("Send failed: %s", e)
            data = None

        if generation != self._generation:
            logger.info("Dropping response for a replaced transcript")
            return
        self._settle(token)

        if data is None:
            self._view.append_message("assistant", MSG_CONNECTION_FAILED)
            return
        if not data.get("success"):
            logger.warning("Send rejected: %s", data.get("error"))
            self._view.append_message("assistant", MSG_SEND_FAILED)
            return

        if self.state.current_chat_id is None and data.get("chatId"):
            self.state = self.state.with_chat_id(data["chatId"])
        content = data.get("response") or ""
        self.state = self.state.with_assistant(content)
        self._view.append_message("assistant", content)
        await self._reveal(data.get("metadata"), generation)
        await self.refresh_history()

    async def _reveal(self, metadata: Optional[dict[str, Any]], generation: int) -> None:
        """Second reveal stage: enrichment widgets after a short delay, then the chart embed."""
        enrichments = build_enrichments(metadata)
        if enrichments.empty:
            return
        await asyncio.sleep(self._reveal_delay)
        if generation != self._generation:
            return
        self._view.reveal_enrichments(enrichments)
        if enrichments.chart is None:
            return
        symbol = enrichments.chart.symbol
        try:
            body = await self._api.chart(symbol)
        except ChatApiError as e:
            logger.warning("Chart embed failed for %s: %s", symbol, e)
            body = None
        if generation != self._generation:
            return
        if body and body.get("success") and (body.get("data") or {}).get("embedUrl"):
            self._view.fill_chart(symbol, body["data"])
        else:
            self._view.chart_unavailable(symbol)

    # -- history sidebar ---------------------------------------------------

    async def refresh_history(self) -> None:
        owner = self.state.wallet_address
        if not owner:
            return
        try:
            body = await self._api.list_chats(owner)
        except ChatApiError as e:
            logger.warning("Loading chat history failed: %s", e)
            return
        if self.state.wallet_address != owner or not body.get("success"):
            return
        self.state = self.state.with_chats(body.get("chats") or [])
        self._view.render_chat_list(list(self.state.chats), self.state.current_chat_id)

    async def load_chat(self, chat_id: str) -> bool:
        owner = self.state.wallet_address
        if not owner:
            self._view.alert(MSG_CONNECT_TO_CHAT)
            return False
        try:
            body = await self._api.get_chat(owner, chat_id)
        except ChatApiError as e:
            logger.warning("Loading chat %s failed: %s", chat_id, e)
            body = None
        if not body or not body.get("success"):
            self._view.alert(MSG_LOAD_FAILED)
            return False
        messages = body["chat"].get("messages") or []
        self._replace_transcript()
        self.state = self.state.load_chat(chat_id, messages)
        self._view.render_transcript(messages)
        self._view.show_chat()
        self._view.render_chat_list(list(self.state.chats), chat_id)
        return True

    async def request_delete(self, chat_id: str) -> bool:
        """Delete after explicit confirmation; deleting the active chat starts a fresh one."""
        owner = self.state.wallet_address
        if not owner:
            return False
        title = next((c.get("title") for c in self.state.chats if c.get("id") == chat_id), None) or "this chat"
        if not await self._view.confirm(DELETE_CONFIRM_TEMPLATE.format(title=title)):
            return False
        try:
            body = await self._api.delete_chat(owner, chat_id)
        except ChatApiError as e:
            logger.warning("Deleting chat %s failed: %s", chat_id, e)
            body = None
        if not body or not body.get("success"):
            self._view.alert(MSG_DELETE_FAILED)
            return False
        if self.state.current_chat_id == chat_id:
            self.start_new_chat()
        await self.refresh_history()
        return True

    # -- timers ------------------------------------------------------------

    def _start_countdown(self, started_at: int) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        self._countdown = RateLimitCountdown(
            self._clock,
            self._on_countdown_tick,
            self._on_countdown_complete,
            tick_seconds=self._tick_seconds,
        )
        self._countdown.start(started_at)

    def _on_countdown_tick(self, remaining_ms: int, text: str, phase: CountdownPhase) -> None:
        self._view.show_countdown(text, phase)

    def _on_countdown_complete(self) -> None:
        self.state = self.state.cooldown_finished()
        self._view.set_input_enabled(True)
        self._view.hide_countdown()

    def _start_thinking(self, text: str, token: int) -> None:
        """The newest send owns the single indicator; an older one's cycler is replaced, not hidden."""
        self._cancel_thinking()
        self._thinking = ThinkingCycler(
            thinking_phrases_for(text), self._view.show_thinking, interval=self._thinking_interval
        )
        self._thinking_token = token
        self._thinking.start()

    def _cancel_thinking(self) -> bool:
        if self._thinking is None:
            return False
        self._thinking.stop()
        self._thinking = None
        self._thinking_token = None
        return True

    def _settle(self, token: int) -> None:
        """A send finished: drop its indicator if it still owns it; leave awaiting-response once none are pending."""
        self._pending.discard(token)
        if token == self._thinking_token and self._cancel_thinking():
            self._view.hide_thinking()
        if not self._pending:
            self.state = self.state.response_settled()

    def _replace_transcript(self) -> None:
        self._generation += 1
        self._pending.clear()
        self._chat_binding = None
        if self._cancel_thinking():
            self._view.hide_thinking()
        self.state = self.state.response_settled()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight sends (and their reveal stages) to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        if self._cancel_thinking():
            self._view.hide_thinking()
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
        await self._api.close()
