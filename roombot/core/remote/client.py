"""
Client for the remote JSON document store (git-hosting contents API).

Purpose
-------
Load and save named JSON documents kept in a repository on the remote
store, keeping them usable when the network is not.

Responsibilities
----------------
- Authenticated requests with retry/backoff for transient failures
- Transparent wait-and-retry when the server reports an exhausted quota
- Read path: cache -> remote -> local backup
- Write path: local backup -> remote -> cache
- One in-flight save per document path

Non-Responsibilities
--------------------
- Deciding *what* gets persisted or when (SyncCoordinator)
- Cache eviction policy (CacheManager)

Architecture Notes
------------------
- Rate-limit waits never consume the retry budget. They are plain
  `asyncio.sleep` calls so cancelling the caller aborts the wait, and an
  optional cap (`max_rate_limit_waits`) turns an endless wait into
  `RateLimited`.
- 404 surfaces immediately as `RemoteNotFound`; other statuses in
  NON_RETRYABLE_STATUSES surface immediately as `RequestFailed`.
"""

from __future__ import annotations

import asyncio
import base64
import json
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from roombot.core.cache.manager import CacheCategory, CacheManager
from roombot.core.config.settings import RemoteStoreSettings
from roombot.core.constants import (
    GITHUB_ACCEPT_HEADER,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    RATE_LIMIT_STATUSES,
    REMOTE_CACHE_PREFIX,
    RETRY_AFTER_HEADER,
)
from roombot.core.exceptions import (
    TRANSIENT_EXCEPTIONS,
    LoadFailed,
    MalformedResponse,
    RateLimited,
    RemoteNotFound,
    RemoteStatusError,
    RemoteStoreError,
    RequestFailed,
    SaveFailed,
)
from roombot.core.logging.logger import get_logger
from roombot.core.remote.retry_policy import RetryPolicy
from roombot.core.storage.backup import BackupStore

logger = get_logger(__name__)

_MISSING = object()


@dataclass(frozen=True, slots=True)
class RemoteDocument:
    path: str
    content: bytes
    sha: Optional[str]


def _is_retryable_remote_error(error: BaseException) -> bool:
    if isinstance(error, RemoteStatusError):
        return error.is_retryable
    return isinstance(error, TRANSIENT_EXCEPTIONS)


class RemoteStoreClient:
    """
    Async client for documents stored under ``/repos/{owner}/{repo}/contents``.

    Examples
    --------
    >>> client = RemoteStoreClient(settings, cache, backup)
    >>> admins = await client.load("admins.json")
    >>> await client.save("admins.json", admins)
    >>> await client.close()
    """

    def __init__(
        self,
        settings: RemoteStoreSettings,
        cache: CacheManager,
        backup: BackupStore,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.backup = backup
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep
        self._clock = clock
        self._retry_policy = RetryPolicy(
            settings.retry,
            sleep=sleep,
            should_retry=_is_retryable_remote_error,
        )
        self._save_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        self.rate_limit_waits: int = 0

    # =========================================================================
    # SESSION
    # =========================================================================

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.debug("Remote store session closed")
        self._session = None

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": GITHUB_ACCEPT_HEADER}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        return headers

    def _contents_endpoint(self, path: str) -> str:
        return f"/repos/{self.settings.owner}/{self.settings.repo}/contents/{path}"

    def _rate_limit_wait(self, headers: Any) -> Optional[float]:
        """Seconds to wait if the response reports an exhausted quota, else None."""
        if headers.get(RATE_LIMIT_REMAINING_HEADER) != "0":
            return None

        reset = headers.get(RATE_LIMIT_RESET_HEADER)
        if reset is not None:
            try:
                return max(0.0, float(reset) - self._clock())
            except ValueError:
                pass

        retry_after = headers.get(RETRY_AFTER_HEADER)
        if retry_after is not None:
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                pass

        return self.settings.retry.base_delay_seconds

    async def _send_once(
        self,
        endpoint: str,
        method: str,
        payload: Optional[Dict[str, Any]],
        params: Optional[Dict[str, str]],
    ) -> Any:
        """
        One HTTP exchange. Returns the decoded JSON body, a `_RateLimitWait`
        when the quota is exhausted, or raises RemoteStatusError.
        """
        url = f"{self.settings.api_base_url}{endpoint}"
        session = self._get_session()
        async with session.request(
            method,
            url,
            headers=self._headers(),
            json=payload,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds),
        ) as response:
            if response.status in RATE_LIMIT_STATUSES:
                wait = self._rate_limit_wait(response.headers)
                if wait is not None:
                    return _RateLimitWait(wait, self._clock() + wait)

            if response.status >= 400:
                raise RemoteStatusError(endpoint, response.status, response.reason or "")

            try:
                return await response.json(content_type=None)
            except ValueError as exc:
                raise MalformedResponse(endpoint, f"body is not JSON ({exc})") from exc

    async def _send_within_quota(
        self,
        endpoint: str,
        method: str,
        payload: Optional[Dict[str, Any]],
        params: Optional[Dict[str, str]],
    ) -> Any:
        waits = 0
        while True:
            result = await self._send_once(endpoint, method, payload, params)
            if not isinstance(result, _RateLimitWait):
                return result

            cap = self.settings.max_rate_limit_waits
            if cap is not None and waits >= cap:
                raise RateLimited(endpoint, waits, result.reset_at)

            waits += 1
            self.rate_limit_waits += 1
            logger.warning(
                "Remote quota exhausted, waiting for reset",
                extra={
                    "endpoint": endpoint,
                    "wait_seconds": round(result.seconds, 3),
                    "waits": waits,
                },
            )
            await self._sleep(result.seconds)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Perform an authenticated call and return the decoded JSON body.

        Raises
        ------
        RemoteNotFound
            The remote answered 404.
        RequestFailed
            Retries exhausted, or a status that retrying cannot fix.
        RateLimited
            Only when `max_rate_limit_waits` is set and exceeded.
        """
        calls = 0

        async def attempt() -> Any:
            nonlocal calls
            calls += 1
            return await self._send_within_quota(endpoint, method, payload, params)

        try:
            return await self._retry_policy.execute(attempt, f"{method} {endpoint}", endpoint=endpoint)
        except RemoteStatusError as exc:
            if exc.status == 404:
                raise RemoteNotFound(endpoint, exc) from exc
            raise RequestFailed(endpoint, exc, attempts=calls, status=exc.status) from exc

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    async def fetch(self, path: str) -> RemoteDocument:
        """Fetch raw document content and its concurrency token."""
        body = await self.request(
            self._contents_endpoint(path),
            params={"ref": self.settings.branch},
        )
        if not isinstance(body, dict):
            raise MalformedResponse(
                self._contents_endpoint(path),
                f"expected a file object, got {type(body).__name__}",
            )
        content = base64.b64decode(body.get("content") or "")
        return RemoteDocument(path=path, content=content, sha=body.get("sha"))

    async def _fetch_sha(self, path: str) -> Optional[str]:
        try:
            document = await self.fetch(path)
        except RemoteNotFound:
            return None
        return document.sha

    async def load(self, path: str, category: CacheCategory = CacheCategory.STATS) -> Any:
        """
        Return the decoded document at `path`.

        Cache first; on a miss the remote copy is fetched, cached and backed
        up. If the remote is unavailable a fresh backup is returned instead.

        Raises
        ------
        LoadFailed
            Remote failed and no fresh backup exists.
        """
        cache_key = REMOTE_CACHE_PREFIX + path
        cached = self.cache.get(cache_key, category, default=_MISSING)
        if cached is not _MISSING:
            return cached

        try:
            document = await self.fetch(path)
            data = json.loads(document.content.decode("utf-8"))
        except (RemoteStoreError, ValueError) + TRANSIENT_EXCEPTIONS as exc:
            logger.warning(
                "Remote load failed, trying local backup",
                extra={"path": path, "error": str(exc), "error_type": type(exc).__name__},
            )
            data = self.backup.load(path)
            if data is None:
                raise LoadFailed(path, exc) from exc
            logger.info("Loaded document from local backup", extra={"path": path})
            return data

        self.cache.set(cache_key, data, category)
        self.backup.save(path, data)
        logger.debug("Loaded document from remote store", extra={"path": path})
        return data

    async def save(
        self,
        path: str,
        data: Any,
        category: CacheCategory = CacheCategory.STATS,
    ) -> None:
        """
        Persist `data` at `path`: local backup first, then the remote store.

        The backup write completes before any network call, so it survives a
        remote failure or a crash mid-save.

        Raises
        ------
        SaveFailed
            The remote write failed; the backup is kept.
        """
        async with self._save_locks[path]:
            self.backup.save(path, data)

            try:
                sha = await self._fetch_sha(path)
                encoded = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
                body: Dict[str, Any] = {
                    "message": f"Update {path} [{datetime.now(timezone.utc).isoformat()}]",
                    "content": base64.b64encode(encoded).decode("ascii"),
                    "branch": self.settings.branch,
                }
                if sha is not None:
                    body["sha"] = sha
                await self.request(self._contents_endpoint(path), method="PUT", payload=body)
            except (RemoteStoreError,) + TRANSIENT_EXCEPTIONS as exc:
                logger.error(
                    "Remote save failed; local backup kept",
                    extra={"path": path, "error": str(exc), "error_type": type(exc).__name__},
                )
                raise SaveFailed(path, exc) from exc

            self.cache.set(REMOTE_CACHE_PREFIX + path, data, category)
            logger.info("Saved document to remote store", extra={"path": path, "new_document": sha is None})

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    async def check_connection(self) -> bool:
        """True when the remote store answers; never raises."""
        try:
            await self.request("/rate_limit")
            return True
        except (RemoteStoreError,) + TRANSIENT_EXCEPTIONS as exc:
            logger.warning("Remote store connection check failed", extra={"error": str(exc)})
            return False

    async def get_rate_limit(self) -> Optional[Dict[str, Any]]:
        """Core quota status (limit, remaining, reset), or None on failure."""
        try:
            body = await self.request("/rate_limit")
            return body["resources"]["core"]
        except (RemoteStoreError, KeyError, TypeError) + TRANSIENT_EXCEPTIONS as exc:
            logger.warning("Could not read remote rate limit", extra={"error": str(exc)})
            return None


@dataclass(frozen=True, slots=True)
class _RateLimitWait:
    seconds: float
    reset_at: float
