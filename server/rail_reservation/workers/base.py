"""Periodic background worker base class."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..models.common import utcnow

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Runs ``process`` every ``interval_seconds`` on the event loop.

    A failing iteration is logged and the loop waits one full interval before
    the next attempt; only cancellation ends the loop.
    """

    def __init__(self, name: str, interval_seconds: float = 60):
        self.name = name
        self.interval_seconds = interval_seconds
        self.iterations = 0
        self.last_run_at: Optional[datetime] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @abstractmethod
    async def process(self) -> None:
        """Run one iteration."""

    async def start(self) -> None:
        if self._running:
            logger.warning(f"{self.name} worker is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"worker:{self.name}")
        logger.info(f"{self.name} worker started with {self.interval_seconds}s interval")

    async def stop(self) -> None:
        if not self._running:
            logger.warning(f"{self.name} worker is not running")
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"{self.name} worker stopped")

    async def run_once(self) -> None:
        """Run a single iteration and record it."""
        started = time.monotonic()
        await self.process()
        self.iterations += 1
        self.last_run_at = utcnow()
        logger.info(
            f"{self.name} worker iteration completed",
            extra={
                "duration_seconds": time.monotonic() - started,
                "worker": self.name,
                "iterations": self.iterations,
            }
        )

    async def _run(self) -> None:
        logger.info(f"{self.name} worker loop started")

        while self._running:
            started = time.monotonic()
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info(f"{self.name} worker loop cancelled")
                raise
            except Exception as e:
                logger.error(
                    f"{self.name} worker error: {e!s}",
                    exc_info=True,
                    extra={"worker": self.name}
                )
                await asyncio.sleep(self.interval_seconds)
                continue

            sleep_time = max(0.0, self.interval_seconds - (time.monotonic() - started))
            await asyncio.sleep(sleep_time)
