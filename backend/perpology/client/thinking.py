"""
Thinking indicator: topic-matched status phrases cycled while a response is pending.
"""
import asyncio
from typing import Callable, Optional, Sequence

from perpology.core.constants import THINKING_CYCLE_SECONDS

# (keywords, phrases); first bucket with a keyword contained in the lowercased text wins
THINKING_BUCKETS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("news", "update"),
        (
            "Searching latest crypto news...",
            "Analyzing market sentiment...",
            "Gathering recent developments...",
            "Processing news sources...",
            "Compiling market updates...",
        ),
    ),
    (
        ("price", "chart"),
        (
            "Fetching live price data...",
            "Analyzing price movements...",
            "Processing market data...",
            "Calculating price metrics...",
            "Generating price analysis...",
        ),
    ),
    (
        ("trade", "strategy"),
        (
            "Analyzing trading opportunities...",
            "Calculating risk metrics...",
            "Evaluating market conditions...",
            "Processing technical indicators...",
            "Generating trading insights...",
        ),
    ),
    (
        ("technical", "analysis"),
        (
            "Calculating technical indicators...",
            "Analyzing chart patterns...",
            "Processing price action...",
            "Evaluating support/resistance...",
            "Generating technical analysis...",
        ),
    ),
)

DEFAULT_THINKING_PHRASES: tuple[str, ...] = (
    "Processing your request...",
    "Analyzing market context...",
    "Gathering relevant data...",
    "Generating insights...",
    "Preparing response...",
)


def thinking_phrases_for(text: str) -> tuple[str, ...]:
    lower = (text or "").lower()
    for keywords, phrases in THINKING_BUCKETS:
        if any(k in lower for k in keywords):
            return phrases
    return DEFAULT_THINKING_PHRASES


class ThinkingCycler:
    """Shows phrases[0] immediately, then the next phrase every interval until stop()."""

    def __init__(
        self,
        phrases: Sequence[str],
        on_phrase: Callable[[str], None],
        *,
        interval: float = THINKING_CYCLE_SECONDS,
    ) -> None:
        self._phrases = tuple(phrases) or DEFAULT_THINKING_PHRASES
        self._on_phrase = on_phrase
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        index = 0
        while not self._stopped:
            self._on_phrase(self._phrases[index % len(self._phrases)])
            index += 1
            await asyncio.sleep(self._interval)
