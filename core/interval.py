"""
Fixed-delay repeating timer on the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class IntervalTimer:
    """Calls ``callback`` every ``period`` until stopped. The first call happens one period after ``start()``."""

    def __init__(self, period: timedelta, callback: Callable[[], None], *, name: str = "interval-timer"):
        if period.total_seconds() <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        seconds = self.period.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                self._callback()
            except Exception:
                logger.exception("%s callback raised", self._name)
