"""Scheduler for a periodic background job.

Runs one coroutine on a fixed interval, starting immediately. Each run is
awaited before the scheduler sleeps, so runs never overlap; a slow run delays
the next one instead of stacking up behind it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from streamcord.util.logger import get_logger

logger = get_logger("periodic_scheduler")


class PeriodicScheduler:
    """
    Reusable scheduler for one periodic job.

    Args:
        name: Human-readable name for logging (e.g., "stream monitor").
        job: Async callable run once per interval.
        get_interval: Callable returning the interval in seconds, read before every sleep.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        get_interval: Callable[[], float],
    ) -> None:
        self._name = name
        self._job = job
        self._get_interval = get_interval
        self._task: asyncio.Task | None = None
        self.runs = 0
        self.failures = 0
        self.last_error: BaseException | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run the job once, logging instead of raising on failure.

        Returns:
            bool: True when the job completed without raising.
        """
        self.runs += 1
        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            self.last_error = exc
            logger.exception("[%s] Periodic job failed: %s", self._name, exc)
            return False
        self.last_error = None
        return True

    async def _run_loop(self) -> None:
        """Infinite loop: run the job, sleep, repeat."""
        logger.info("[%s] Starting periodic job (interval=%.1fs)", self._name, self._get_interval())
        try:
            while True:
                await self.run_once()
                await asyncio.sleep(self._get_interval())
        except asyncio.CancelledError:
            logger.info("[%s] Periodic job cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.is_running:
            logger.warning("[%s] Periodic job already running", self._name)
            return
        self._task = asyncio.create_task(self._run_loop(), name=f"streamcord-{self._name.replace(' ', '-')}")

    async def shutdown(self) -> None:
        """Stop the task and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[%s] Scheduler shutdown complete", self._name)
