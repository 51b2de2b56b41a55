"""
Retry policy for remote store calls.

Purpose
-------
Implement retry logic with exponential backoff for transient failures
talking to the remote document store (connection errors, timeouts, 5xx).

Responsibilities
----------------
- Execute operations with automatic retry on transient failures
- Apply exponential backoff between retries
- Respect the retry budget and surface `RequestFailed` once it is spent
- Log retry attempts and outcomes

Non-Responsibilities
--------------------
- Rate-limit waits (handled by RemoteStoreClient; they never consume budget)
- Deciding which errors are transient (the caller supplies a predicate)

Architecture Notes
------------------
- delay = min(base_delay * 2 ** retry_index, max_delay), retry_index from 0
- Optional +/-10% jitter, off by default so delays are predictable
- Total attempts = max_retries + 1
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from roombot.core.config.settings import RetrySettings
from roombot.core.exceptions import RequestFailed, is_transient_error
from roombot.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Exponential backoff around an async operation.

    Examples
    --------
    >>> policy = RetryPolicy(RetrySettings(max_retries=3))
    >>> data = await policy.execute(fetch, "GET /rate_limit")
    """

    def __init__(
        self,
        settings: Optional[RetrySettings] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        should_retry: Callable[[BaseException], bool] = is_transient_error,
    ) -> None:
        self.settings = settings or RetrySettings()
        self._sleep = sleep
        self._should_retry = should_retry

    @property
    def max_attempts(self) -> int:
        return self.settings.max_retries + 1

    def calculate_delay(self, retry_index: int) -> float:
        """
        Backoff before retry number `retry_index` (0 for the first retry).

        >>> RetryPolicy(RetrySettings(base_delay_seconds=1, max_delay_seconds=5)).calculate_delay(3)
        5.0
        """
        delay = min(
            self.settings.base_delay_seconds * (2 ** retry_index),
            self.settings.max_delay_seconds,
        )
        if self.settings.jitter:
            jitter_amount = delay * 0.1
            delay += random.uniform(-jitter_amount, jitter_amount)
        return max(0.0, delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        *,
        endpoint: Optional[str] = None,
    ) -> T:
        """
        Run `operation`, retrying transient failures.

        Raises
        ------
        RequestFailed
            After `max_retries + 1` failed attempts, carrying the last error
            and its HTTP status when it had one.
        Exception
            Any non-transient error, unchanged, on the attempt it occurred.
        """
        last_exception: Optional[BaseException] = None

        for attempt in range(self.max_attempts):
            try:
                result = await operation()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not self._should_retry(exc):
                    raise

                last_exception = exc
                if attempt + 1 >= self.max_attempts:
                    break

                delay = self.calculate_delay(attempt)
                logger.warning(
                    "Remote operation failed, retrying",
                    extra={
                        "remote_operation": operation_name,
                        "attempt": attempt + 1,
                        "total_attempts": self.max_attempts,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "retry_delay_seconds": round(delay, 3),
                    },
                )
                await self._sleep(delay)
                continue

            if attempt > 0:
                logger.info(
                    "Remote operation succeeded after retry",
                    extra={"remote_operation": operation_name, "attempt": attempt + 1},
                )
            return result

        logger.error(
            "Remote operation failed after all retries",
            extra={
                "remote_operation": operation_name,
                "attempts": self.max_attempts,
                "error": str(last_exception),
                "error_type": type(last_exception).__name__,
            },
        )
        raise RequestFailed(
            endpoint or operation_name,
            last_exception,
            attempts=self.max_attempts,
            status=getattr(last_exception, "status", None),
        ) from last_exception
