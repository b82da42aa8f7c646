"""
Periodic asyncio task with pause/resume.

Both polling loops (transport reconciliation and end-of-region watch)
run on this helper. Pausing does not cancel the task, so a tick that is
itself driving a transition can suspend the loops around it and resume
them afterwards.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger()


class PeriodicTask:
    """Runs ``tick`` every ``interval`` seconds until stopped."""

    def __init__(self, name: str, interval: float, tick: Callable[[], Awaitable[None]]):
        self.name = name
        self.interval = interval
        self._tick = tick
        self._task: Optional[asyncio.Task] = None
        self._paused = False
        self._stopped = False
        self._resume_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        if not self._paused:
            return False
        if self._resume_at is not None and asyncio.get_running_loop().time() >= self._resume_at:
            self._paused = False
            self._resume_at = None
            return False
        return True

    def start(self):
        """Start the loop on the running event loop (no-op if running)."""
        if self.running:
            return
        self._paused = False
        self._resume_at = None
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("Periodic task started", task=self.name, interval=self.interval)

    async def stop(self):
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        self._stopped = True
        if task is asyncio.current_task():
            # Called from inside a tick: the loop exits once the tick returns
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Periodic task stopped", task=self.name)

    def pause(self):
        """Skip ticks until :meth:`resume` is called."""
        self._paused = True
        self._resume_at = None

    def resume(self, delay: float = 0.0):
        """Resume ticking, optionally after ``delay`` seconds."""
        if not self._paused:
            return
        if delay <= 0:
            self._paused = False
            self._resume_at = None
            return
        self._resume_at = asyncio.get_running_loop().time() + delay

    async def _run(self):
        while not self._stopped:
            if not self.paused:
                try:
                    await self._tick()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Periodic tick failed", task=self.name, error=str(e))
            await asyncio.sleep(self.interval)
