"""
Unit tests for RetryPolicy.

Tests backoff calculation, retry budget and which errors are retried.
"""

import aiohttp
import pytest

from roombot.core.config.settings import RetrySettings
from roombot.core.exceptions import RemoteStatusError, RequestFailed
from roombot.core.remote.retry_policy import RetryPolicy

pytestmark = pytest.mark.unit


class Flaky:
    """Callable that fails `failures` times, then returns `result`."""

    def __init__(self, failures, error_factory=lambda: ConnectionError("boom"), result="ok"):
        self.failures = failures
        self.error_factory = error_factory
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_factory()
        return self.result


class TestDelayCalculation:
    def test_exponential_sequence_capped_at_max(self):
        policy = RetryPolicy(RetrySettings(base_delay_seconds=1.0, max_delay_seconds=5.0))

        assert [policy.calculate_delay(i) for i in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_stays_within_ten_percent(self):
        policy = RetryPolicy(RetrySettings(base_delay_seconds=2.0, max_delay_seconds=5.0, jitter=True))

        for _ in range(50):
            assert 1.8 <= policy.calculate_delay(0) <= 2.2

    def test_max_attempts_is_retries_plus_one(self):
        assert RetryPolicy(RetrySettings(max_retries=3)).max_attempts == 4


@pytest.mark.asyncio
class TestExecute:
    async def test_success_first_try_does_not_sleep(self, sleep):
        policy = RetryPolicy(RetrySettings(), sleep=sleep)
        operation = Flaky(0)

        assert await policy.execute(operation, "op") == "ok"
        assert operation.calls == 1
        assert sleep.calls == []

    async def test_success_on_second_attempt_sleeps_base_delay_once(self, sleep):
        policy = RetryPolicy(RetrySettings(), sleep=sleep)
        operation = Flaky(1)

        assert await policy.execute(operation, "op") == "ok"
        assert operation.calls == 2
        assert sleep.calls == [1.0]

    async def test_exhausted_budget_raises_request_failed(self, sleep):
        policy = RetryPolicy(RetrySettings(max_retries=3), sleep=sleep)
        operation = Flaky(10, error_factory=lambda: aiohttp.ClientConnectionError("down"))

        with pytest.raises(RequestFailed) as exc_info:
            await policy.execute(operation, "GET /x")

        assert operation.calls == 4
        assert sleep.calls == [1.0, 2.0, 4.0]
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)

    async def test_exhausted_budget_keeps_endpoint_and_last_status(self, sleep):
        policy = RetryPolicy(RetrySettings(max_retries=1), sleep=sleep)
        operation = Flaky(10, error_factory=lambda: RemoteStatusError("/repos/o/r/contents/a.json", 503))

        with pytest.raises(RequestFailed) as exc_info:
            await policy.execute(operation, "GET /repos/o/r/contents/a.json", endpoint="/repos/o/r/contents/a.json")

        assert exc_info.value.endpoint == "/repos/o/r/contents/a.json"
        assert exc_info.value.status == 503
        assert exc_info.value.attempts == 2

    async def test_exhausted_budget_without_http_status(self, sleep):
        policy = RetryPolicy(RetrySettings(max_retries=0), sleep=sleep)

        with pytest.raises(RequestFailed) as exc_info:
            await policy.execute(Flaky(1), "op")

        assert exc_info.value.endpoint == "op"
        assert exc_info.value.status is None

    async def test_non_transient_error_is_raised_immediately(self, sleep):
        policy = RetryPolicy(RetrySettings(), sleep=sleep)
        operation = Flaky(1, error_factory=lambda: ValueError("bad input"))

        with pytest.raises(ValueError):
            await policy.execute(operation, "op")

        assert operation.calls == 1
        assert sleep.calls == []

    async def test_custom_predicate(self, sleep):
        policy = RetryPolicy(
            RetrySettings(max_retries=1),
            sleep=sleep,
            should_retry=lambda exc: isinstance(exc, KeyError),
        )
        operation = Flaky(1, error_factory=lambda: KeyError("k"))

        assert await policy.execute(operation, "op") == "ok"
        assert sleep.calls == [1.0]

    async def test_zero_retries_means_single_attempt(self, sleep):
        policy = RetryPolicy(RetrySettings(max_retries=0), sleep=sleep)
        operation = Flaky(1)

        with pytest.raises(RequestFailed):
            await policy.execute(operation, "op")

        assert operation.calls == 1
        assert sleep.calls == []
