# path: route-replay-api/app/services/frame_scheduler.py

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from app import config as C

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], object]


class AsyncioFrameScheduler:
    """
    Calls ``callback(now)`` every 1/hz seconds on the running event loop.

    ``stop()`` cancels the pending frame immediately; no callback runs after
    it returns.
    """

    def __init__(self, hz: float = C.FRAME_HZ):
        self.period = 1.0 / hz
        self._task: Optional[asyncio.Task] = None
        self._callback: Optional[FrameCallback] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: FrameCallback) -> None:
        self.stop()
        loop = asyncio.get_running_loop()
        self._callback = callback
        self._task = loop.create_task(self._run(loop, callback))

    def stop(self) -> None:
        task, self._task = self._task, None
        self._callback = None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, loop: asyncio.AbstractEventLoop, callback: FrameCallback) -> None:
        try:
            while self._callback is callback:
                callback(loop.time())
                await asyncio.sleep(self.period)
        except Exception:
            logger.exception("Frame callback failed; stopping frame loop")
            if self._callback is callback:
                self._callback = None
