"""
Terminal chat client: drives ClientChatController against a running backend.

  CHAT_URL=http://localhost:8000 WALLET_ADDRESS=<address> python scripts/chat_ui.py

Commands: /new, /chats, /load <n>, /delete <n>, /quit. Anything else is sent as a message.
"""
import asyncio
import logging
import os
from typing import Any, Optional, Sequence

from perpology.client import ChatApiClient, ChatView, ClientChatController, StaticWallet
from perpology.client.countdown import CountdownPhase
from perpology.client.enrichment import SIGNAL_TITLE, Enrichments

CHAT_URL = os.environ.get("CHAT_URL", "http://localhost:8000")
WALLET_ADDRESS = os.environ.get("WALLET_ADDRESS", "")


class ConsoleView(ChatView):
    def __init__(self) -> None:
        self.chats: list[dict[str, Any]] = []
        self._last_countdown: Optional[str] = None

    def show_landing(self) -> None:
        print("Connect a wallet to start (set WALLET_ADDRESS).")

    def show_chat(self) -> None:
        pass

    def alert(self, message: str) -> None:
        print(f"! {message}")

    async def confirm(self, prompt: str) -> bool:
        answer = await asyncio.to_thread(input, f"{prompt} [y/N] ")
        return answer.strip().lower() in ("y", "yes")

    def set_input_enabled(self, enabled: bool) -> None:
        if enabled:
            print("(ready to send)")

    def append_message(self, role: str, content: str) -> None:
        label = "you" if role == "user" else "perpology"
        print(f"\n[{label}] {content}\n")

    def clear_transcript(self) -> None:
        print("-" * 60)

    def render_chat_list(self, chats: Sequence[dict[str, Any]], active_chat_id: Optional[str]) -> None:
        self.chats = list(chats)

    def print_chats(self) -> None:
        if not self.chats:
            print("No chat history yet. Start a new conversation!")
        for i, chat in enumerate(self.chats, 1):
            print(f"  {i}. {chat['title']}  ({chat.get('updatedAt') or ''})")

    def show_countdown(self, text: str, phase: CountdownPhase) -> None:
        # Only whole seconds; the terminal can't redraw every 50 ms
        whole = text.split(":")[0]
        if whole != self._last_countdown:
            self._last_countdown = whole

    def hide_countdown(self) -> None:
        self._last_countdown = None

    def pulse_countdown(self) -> None:
        print(f"(cooldown: {self._last_countdown or '00'}s left)")

    def show_thinking(self, phrase: str) -> None:
        print(f"  … {phrase}")

    def hide_thinking(self) -> None:
        pass

    def reveal_enrichments(self, enrichments: Enrichments) -> None:
        if enrichments.signal:
            print(f"  {SIGNAL_TITLE}: {enrichments.signal.direction.upper()}")
            for line in enrichments.signal.lines():
                print(f"    {line}")
        if enrichments.chart:
            print(f"  Chart: {enrichments.chart.symbol} ({enrichments.chart.name})")
        for tag in enrichments.sources:
            print(f"  Source: {tag.label} <{tag.url}>")

    def fill_chart(self, symbol: str, embed: dict[str, Any]) -> None:
        print(f"  {symbol} chart: {embed['embedUrl']}")

    def chart_unavailable(self, symbol: str) -> None:
        print(f"  {symbol} chart: temporarily unavailable")

    def show_wallet(self, address: Optional[str]) -> None:
        if address:
            print(f"Wallet {address[:8]}...{address[-8:]}")


def _pick(view: ConsoleView, arg: str) -> Optional[str]:
    try:
        return view.chats[int(arg) - 1]["id"]
    except (ValueError, IndexError):
        print("! Pick a chat number from /chats")
        return None


async def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    view = ConsoleView()
    controller = ClientChatController(ChatApiClient(CHAT_URL), view, StaticWallet(WALLET_ADDRESS or None))
    print(f"Chat UI → {CHAT_URL}")
    if not await controller.connect_wallet():
        await controller.close()
        return
    controller.start_new_chat()
    try:
        while True:
            line = (await asyncio.to_thread(input, "> ")).strip()
            command, _, arg = line.partition(" ")
            if command == "/quit":
                break
            elif command == "/new":
                controller.start_new_chat()
            elif command == "/chats":
                await controller.refresh_history()
                view.print_chats()
            elif command == "/load":
                chat_id = _pick(view, arg)
                if chat_id:
                    await controller.load_chat(chat_id)
            elif command == "/delete":
                chat_id = _pick(view, arg)
                if chat_id:
                    await controller.request_delete(chat_id)
            elif line:
                controller.on_input_activity()
                if controller.submit(line):
                    await controller.drain()
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await controller.close()


if __name__ == "__main__":
    asyncio.run(main())
