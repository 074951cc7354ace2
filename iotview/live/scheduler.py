"""
Countdown-driven refresh trigger.

The scheduler counts down whole seconds and fires its callback at zero.
Automatic and manual refreshes share trigger_now(), so a button press runs
exactly the same gated cycle as a timer expiry. While a cycle is in flight
the countdown is frozen and further triggers are skipped.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .refresh import RefreshOutcome, RefreshResult

logger = logging.getLogger("iotview.scheduler")


class RefreshScheduler:
    """Pausable countdown that runs one refresh cycle at a time."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[RefreshResult]],
        interval: int = 10,
        tick_seconds: float = 1.0,
    ):
        if interval < 1:
            raise ValueError(f"interval must be at least 1 second, got {interval}")
        self.callback = callback
        self.interval = interval
        self.tick_seconds = tick_seconds
        self.time_left = interval
        self.paused = False
        self.in_progress = False
        self.last_result: Optional[RefreshResult] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    # ---------------- countdown control ----------------

    def pause(self) -> None:
        self.paused = True
        logger.debug("auto-refresh paused")

    def resume(self) -> None:
        self.paused = False
        logger.debug("auto-refresh resumed")

    def toggle_pause(self) -> bool:
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def reset(self) -> None:
        self.time_left = self.interval

    def set_interval(self, interval: int) -> None:
        if interval < 1:
            raise ValueError(f"interval must be at least 1 second, got {interval}")
        self.interval = interval
        self.reset()

    @property
    def progress(self) -> float:
        """Remaining fraction of the countdown (1.0 right after a reset)."""
        return self.time_left / self.interval

    # ---------------- triggering ----------------

    async def tick(self) -> Optional[RefreshResult]:
        """
        Advance the countdown by one step.

        Returns the cycle result when this tick fired a refresh, else None.
        Paused or busy schedulers do not count down.
        """
        if self.paused or self.in_progress:
            return None

        self.time_left -= 1
        if self.time_left <= 0:
            return await self.trigger_now()
        return None

    async def trigger_now(self) -> RefreshResult:
        """Run a refresh cycle now (manual refresh uses this too)."""
        if self.in_progress:
            logger.debug("refresh already in progress, skipping trigger")
            return RefreshResult(RefreshOutcome.SKIPPED)

        self.in_progress = True
        self.time_left = self.interval
        try:
            result = await self.callback()
        finally:
            self.in_progress = False
            self.time_left = self.interval

        self.last_result = result
        return result

    # ---------------- background loop ----------------

    async def run(self) -> None:
        """Tick every ``tick_seconds`` until stop() is called."""
        self._running = True
        logger.info(f"refresh scheduler started; interval {self.interval}s")
        while self._running:
            await asyncio.sleep(self.tick_seconds)
            if not self._running:
                break
            try:
                await self.tick()
            except Exception as e:
                logger.exception(f"unexpected error during refresh cycle: {e}")

    def start(self) -> asyncio.Task:
        """Schedule run() on the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    @property
    def running(self) -> bool:
        return self._running
