"""
Rate-limit countdown: a cancellable asyncio task that ticks the remaining cooldown to the view.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from perpology.core.constants import (
    COUNTDOWN_EARLY_FRACTION,
    COUNTDOWN_MIDDLE_FRACTION,
    COUNTDOWN_TICK_SECONDS,
    RATE_LIMIT_WINDOW_MS,
)

logger = logging.getLogger(__name__)


class CountdownPhase(str, Enum):
    EARLY = "early"  # > 60% remaining
    MIDDLE = "middle"  # 30-60% remaining
    LATE = "late"  # < 30% remaining


def format_remaining(remaining_ms: int) -> str:
    """SS:CC (seconds:centiseconds), zero padded; 00:00 at or below zero."""
    if remaining_ms <= 0:
        return "00:00"
    seconds = remaining_ms // 1000
    centis = (remaining_ms % 1000) // 10
    return f"{seconds:02d}:{centis:02d}"


def phase_for(remaining_ms: int, total_ms: int = RATE_LIMIT_WINDOW_MS) -> CountdownPhase:
    progress = remaining_ms / total_ms if total_ms else 0.0
    if progress > COUNTDOWN_EARLY_FRACTION:
        return CountdownPhase.EARLY
    if progress > COUNTDOWN_MIDDLE_FRACTION:
        return CountdownPhase.MIDDLE
    return CountdownPhase.LATE


class RateLimitCountdown:
    """
    Counts down from total_ms starting at started_at (clock ms). Reported remaining time never
    increases; on_complete fires exactly once when it reaches zero and never after cancel().
    """

    def __init__(
        self,
        clock: Callable[[], int],
        on_tick: Callable[[int, str, CountdownPhase], None],
        on_complete: Callable[[], None],
        *,
        total_ms: int = RATE_LIMIT_WINDOW_MS,
        tick_seconds: float = COUNTDOWN_TICK_SECONDS,
    ) -> None:
        self._clock = clock
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._total_ms = total_ms
        self._tick_seconds = tick_seconds
        self._started_at: Optional[int] = None
        self._remaining = total_ms
        self._task: Optional[asyncio.Task] = None
        self._completed = False
        self._cancelled = False

    @property
    def remaining_ms(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def completed(self) -> bool:
        return self._completed

    def start(self, started_at: Optional[int] = None) -> asyncio.Task:
        self._started_at = self._clock() if started_at is None else started_at
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _tick(self) -> int:
        elapsed = self._clock() - self._started_at
        self._remaining = min(self._remaining, max(0, self._total_ms - elapsed))
        self._on_tick(self._remaining, format_remaining(self._remaining), phase_for(self._remaining, self._total_ms))
        return self._remaining

    async def _run(self) -> None:
        while self._tick() > 0:
            await asyncio.sleep(self._tick_seconds)
        if not self._completed and not self._cancelled:
            self._completed = True
            self._on_complete()
