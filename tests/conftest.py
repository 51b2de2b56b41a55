"""
Pytest Configuration and Fixtures for roombot Tests
====================================================

Purpose
-------
Shared fixtures for the unit suite: a controllable clock, a recording
sleep that advances it, a scripted stand-in for `aiohttp.ClientSession`,
and ready-built persistence components wired to them.

Architecture Notes
------------------
- Environment is pinned before any roombot import so Config and logging
  come up in testing mode without a log file.
- Nothing here touches the network or the real wall clock.
"""

from __future__ import annotations

import asyncio
import base64
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("GITHUB_TOKEN", "test-token")

import pytest  # noqa: E402

from roombot.core.cache.manager import CacheManager  # noqa: E402
from roombot.core.config.manager import ConfigManager  # noqa: E402
from roombot.core.config.settings import (  # noqa: E402
    BackupSettings,
    CacheSettings,
    RemoteStoreSettings,
    RetrySettings,
)
from roombot.core.remote.client import RemoteStoreClient  # noqa: E402
from roombot.core.storage.backup import BackupStore  # noqa: E402

START_TIME = 1_700_000_000.0


# ============================================================================
# TIME
# ============================================================================


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records the requested delay and advances the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


# ============================================================================
# HTTP
# ============================================================================


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        reason: str = "",
    ) -> None:
        self.status = status
        self.body = body if body is not None else {}
        self.headers = headers or {}
        self.reason = reason

    async def json(self, content_type: Optional[str] = None) -> Any:
        # Yield once so concurrent callers can interleave here
        await asyncio.sleep(0)
        return self.body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def json(self) -> Any:
        return self.kwargs.get("json")

    @property
    def params(self) -> Any:
        return self.kwargs.get("params")

    @property
    def headers(self) -> Dict[str, str]:
        return self.kwargs.get("headers") or {}


class FakeSession:
    """
    Scripted replacement for `aiohttp.ClientSession`.

    Each call to `request()` consumes the next queued item: a FakeResponse
    is returned, an exception instance is raised.
    """

    def __init__(self, *items: Any) -> None:
        self.items: List[Any] = list(items)
        self.calls: List[RecordedCall] = []
        self.closed = False

    def queue(self, *items: Any) -> None:
        self.items.extend(items)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(RecordedCall(method, url, kwargs))
        if not self.items:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def methods(self) -> List[str]:
        return [call.method for call in self.calls]

    async def close(self) -> None:
        self.closed = True


def contents_body(data: Any, sha: str = "sha-1") -> Dict[str, Any]:
    """Body of a contents API GET for a JSON document."""
    encoded = base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")
    return {"content": encoded, "sha": sha, "encoding": "base64"}


def rate_limited(reset_at: float, status: int = 403) -> FakeResponse:
    return FakeResponse(
        status,
        {"message": "API rate limit exceeded"},
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(reset_at))},
        reason="Forbidden",
    )


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Every test starts without YAML defaults or overrides."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def cache(clock: FakeClock) -> CacheManager:
    return CacheManager(CacheSettings(), clock=clock)


@pytest.fixture
def backup_settings(tmp_path) -> BackupSettings:
    return BackupSettings(directory=tmp_path / "backups")


@pytest.fixture
def backup(backup_settings: BackupSettings, clock: FakeClock) -> BackupStore:
    return BackupStore(backup_settings, clock=clock)


@pytest.fixture
def remote_settings() -> RemoteStoreSettings:
    return RemoteStoreSettings(
        owner="owner",
        repo="repo",
        token="test-token",
        branch="main",
        api_base_url="https://api.example.test",
        retry=RetrySettings(max_retries=3, base_delay_seconds=1.0, max_delay_seconds=5.0),
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def remote(remote_settings, cache, backup, session, sleep, clock) -> RemoteStoreClient:
    return RemoteStoreClient(
        remote_settings,
        cache,
        backup,
        session=session,
        sleep=sleep,
        clock=clock,
    )
