from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

ExpireCallback = Callable[[], Awaitable[None]]
TickCallback = Callable[[int], None]
SleepFn = Callable[[float], Awaitable[None]]

TICK_INTERVAL_SECONDS = 1.0


class QuestionTimer:
    """Per-question countdown.

    The timer only counts down and reports expiry; what happens at zero is
    decided by the owner through ``on_expire``. Every ``start`` issues a new
    generation token, and a countdown task holding a stale token never
    decrements or fires again.
    """

    def __init__(
        self,
        duration_seconds: int,
        *,
        on_expire: ExpireCallback,
        on_tick: TickCallback | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        self._duration = duration_seconds
        self._remaining = duration_seconds
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._sleep = sleep
        self._active = False
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def duration_seconds(self) -> int:
        return self._duration

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    def start(self, duration_seconds: int | None = None) -> None:
        if duration_seconds is not None:
            if duration_seconds <= 0:
                raise ValueError("duration_seconds must be positive")
            self._duration = duration_seconds

        self._detach_task()
        self._generation += 1
        self._remaining = self._duration
        self._active = True
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation),
            name=f"question-timer-{self._generation}",
        )

    def stop(self) -> None:
        self._active = False
        self._generation += 1
        self._detach_task()

    def set_duration(self, duration_seconds: int) -> None:
        if self._active:
            raise RuntimeError("cannot change the duration of a running timer")
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        self._duration = duration_seconds
        self._remaining = duration_seconds

    async def tick(self) -> None:
        if not self._active:
            return

        self._remaining = max(0, self._remaining - 1)
        if self._on_tick is not None:
            self._on_tick(self._remaining)
        if self._remaining > 0:
            return

        # Expired: deactivate before the callback so it may restart the timer.
        self._active = False
        self._generation += 1
        self._detach_task()
        await self._on_expire()

    def format_remaining(self) -> str:
        minutes, seconds = divmod(self._remaining, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def urgency(self) -> str:
        percentage = self._remaining / self._duration * 100
        if percentage > 50:
            return "ok"
        if percentage > 25:
            return "warning"
        return "critical"

    async def _run(self, generation: int) -> None:
        while self._generation == generation:
            await self._sleep(TICK_INTERVAL_SECONDS)
            if self._generation != generation:
                return
            try:
                await self.tick()
            except Exception:
                logger.exception("quiz_timer_expire_callback_failed", generation=generation)
                return

    def _detach_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()
