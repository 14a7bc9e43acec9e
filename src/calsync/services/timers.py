from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``callback`` every ``interval`` on the current loop until stopped."""

    def __init__(self, name: str, interval: timedelta, callback: Callable[[], Awaitable[object]]) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.debug("Started periodic task %s every %ss", self.name, self.interval.total_seconds())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped periodic task %s", self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval.total_seconds())
            try:
                await self._callback()
            except Exception:  # noqa: BLE001
                logger.exception("Periodic task %s failed", self.name)
