"""
Periodic background tasks.

A `PeriodicTask` runs a callback on a fixed interval in its own asyncio task
until stopped. A failing iteration is logged and the schedule continues;
cancellation via `stop()` is the only way the loop ends.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Union

from roombot.core.logging.logger import get_logger

logger = get_logger(__name__)

Callback = Callable[[], Union[Awaitable[Any], Any]]


class PeriodicTask:
    """
    Cancellable ticker around a sync or async callback.

    Examples
    --------
    >>> sweeper = PeriodicTask("cache-sweep", 600, cache.cleanup)
    >>> sweeper.start()
    >>> ...
    >>> await sweeper.stop()
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callback,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None

        self.iterations: int = 0
        self.failures: int = 0
        self.last_run_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop (idempotent)."""
        if self.is_running:
            logger.warning("Periodic task already running", extra={"task": self.name})
            return

        self._task = asyncio.create_task(self._run(), name=f"periodic:{self.name}")
        logger.info(
            "Periodic task started",
            extra={"task": self.name, "interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Safe to call twice."""
        task = self._task
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            logger.info(
                "Periodic task stopped",
                extra={"task": self.name, "iterations": self.iterations, "failures": self.failures},
            )

    async def run_once(self) -> bool:
        """Run a single iteration; returns False if the callback raised."""
        self.iterations += 1
        self.last_run_at = time.time()
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
            return True
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            logger.error(
                "Periodic task iteration failed",
                extra={
                    "task": self.name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "failures": self.failures,
                },
                exc_info=True,
            )
            return False

    async def _run(self) -> None:
        logger.debug("Periodic task loop entered", extra={"task": self.name})
        while True:
            await self._sleep(self.interval_seconds)
            await self.run_once()
