"""Background reclamation of live sessions stuck in STARTING.

The sweeper is owned by the application lifespan: `start()` spawns the loop
on the running event loop and `stop()` cancels it and waits for it to exit.
"""

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

ReclaimFn = Callable[[], Awaitable[list[str]]]


class LiveExpirySweeper:
    """Runs `reclaim` every `interval_seconds` until stopped.

    Args:
        reclaim: Coroutine function clearing expired rooms and returning them
        interval_seconds: Delay between two sweeps
    """

    def __init__(self, reclaim: ReclaimFn, interval_seconds: float = 10.0):
        self._reclaim = reclaim
        self._interval = max(0.01, float(interval_seconds))
        self._task: asyncio.Task | None = None
        self._stopping: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[str]:
        rooms = await self._reclaim()
        if rooms:
            logger.info("Live sweeper reclaimed {} room(s): {}", len(rooms), rooms)
        return rooms

    async def _loop(self, stopping: asyncio.Event) -> None:
        logger.info("Live sweeper started interval={}s", self._interval)
        try:
            while not stopping.is_set():
                try:
                    await asyncio.wait_for(stopping.wait(), timeout=self._interval)
                    break
                except asyncio.TimeoutError:
                    pass

                try:
                    await self.run_once()
                except Exception as e:
                    logger.exception(f"Live sweep failed: {e}")
        except asyncio.CancelledError:
            pass
        finally:
            logger.info("Live sweeper stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stopping), name="live-expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return

        if self._stopping is not None:
            self._stopping.set()
        try:
            await asyncio.wait_for(self._task, timeout=max(1.0, self._interval))
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            self._stopping = None
