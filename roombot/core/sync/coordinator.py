"""
Sync coordinator for persisted room data.

Purpose
-------
Own the three persisted documents (admins, custom uniforms, player stats),
load them at startup and push them back to the remote store on a schedule.

Responsibilities
----------------
- Startup load with per-document fallback to defaults
- Coalesced periodic full saves, plus a debounced trigger for stats changes
- Data accessors used by command handlers
- Lifecycle of the background save task

Non-Responsibilities
--------------------
- Transport, retry and backup details (RemoteStoreClient)

State Machine
-------------
UNINITIALIZED -> LOADING -> READY <-> SAVING. `degraded` names the documents
that are being served from defaults because neither the remote store nor a
fresh backup could supply them.
"""

from __future__ import annotations

import asyncio
import copy
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from roombot.core.cache.manager import CacheCategory
from roombot.core.config.settings import SyncSettings
from roombot.core.constants import DEFAULT_UNIFORMS
from roombot.core.exceptions import LoadFailed, SaveFailed
from roombot.core.logging.logger import LogContext, get_logger
from roombot.core.remote.client import RemoteStoreClient
from roombot.core.tasks import PeriodicTask

logger = get_logger(__name__)


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class SyncCoordinator:
    """
    Load-on-start and coalesced saves for admins, uniforms and stats.

    Examples
    --------
    >>> coordinator = SyncCoordinator(SyncSettings(), remote)
    >>> await coordinator.initialize()
    >>> coordinator.start()
    >>> await coordinator.record_stats("auth-123", goals=1)
    >>> await coordinator.shutdown()
    """

    def __init__(
        self,
        settings: SyncSettings,
        remote: RemoteStoreClient,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.remote = remote
        self._clock = clock

        self.state: SyncState = SyncState.UNINITIALIZED
        self.degraded: Set[str] = set()
        self.last_sync: float = 0.0

        self._admins: Dict[str, str] = {}
        self._custom_uniforms: Dict[str, Dict[str, Any]] = {}
        self._stats: Dict[str, Dict[str, float]] = {}

        self._save_lock = asyncio.Lock()
        self._save_task: Optional[PeriodicTask] = None

    # =========================================================================
    # STARTUP
    # =========================================================================

    async def _load_document(self, path: str, category: CacheCategory, default: Any) -> Any:
        try:
            data = await self.remote.load(path, category)
        except LoadFailed as exc:
            self.degraded.add(path)
            logger.warning(
                "Document unavailable; using defaults",
                extra={"path": path, "error": str(exc)},
            )
            return default

        if not isinstance(data, dict):
            self.degraded.add(path)
            logger.warning(
                "Document has unexpected shape; using defaults",
                extra={"path": path, "data_type": type(data).__name__},
            )
            return default
        # Detach from the cached object so handler mutations stay local
        return copy.deepcopy(data)

    async def initialize(self) -> None:
        """
        Load admins, uniforms and stats. Never raises for a missing document;
        each one falls back to its own default independently.
        """
        self.state = SyncState.LOADING
        self.degraded.clear()
        start = time.perf_counter()

        async with LogContext(component="sync", operation="initialize"):
            self._admins = await self._load_document(
                self.settings.admins_path, CacheCategory.STATS, {}
            )
            self._custom_uniforms = await self._load_document(
                self.settings.uniforms_path, CacheCategory.STATS, {}
            )
            self._stats = await self._load_document(
                self.settings.stats_path, CacheCategory.STATS, {}
            )

        self.last_sync = self._clock()
        self.state = SyncState.READY
        logger.info(
            "Sync coordinator ready",
            extra={
                "admins": len(self._admins),
                "custom_uniforms": len(self._custom_uniforms),
                "players_with_stats": len(self._stats),
                "degraded": sorted(self.degraded),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded)

    # =========================================================================
    # SAVING
    # =========================================================================

    async def full_save(self) -> Dict[str, bool]:
        """
        Persist all three documents. Saves are serialized; a failed document
        is logged and reported as False without stopping the others.
        """
        async with self._save_lock:
            previous_state = self.state
            self.state = SyncState.SAVING
            snapshot = {
                self.settings.admins_path: copy.deepcopy(self._admins),
                self.settings.uniforms_path: copy.deepcopy(self._custom_uniforms),
                self.settings.stats_path: copy.deepcopy(self._stats),
            }

            results: Dict[str, bool] = {}
            try:
                async with LogContext(component="sync", operation="full_save"):
                    for path, data in snapshot.items():
                        try:
                            await self.remote.save(path, data)
                        except SaveFailed as exc:
                            results[path] = False
                            logger.error(
                                "Document save failed",
                                extra={"path": path, "error": str(exc)},
                            )
                        else:
                            results[path] = True
                            self.degraded.discard(path)
            finally:
                self.last_sync = self._clock()
                self.state = (
                    SyncState.READY if previous_state is not SyncState.UNINITIALIZED
                    else previous_state
                )

            logger.info("Full save finished", extra={"results": results})
            return results

    async def scheduled_full_save(self) -> None:
        """Periodic entry point; failures are logged and never propagate."""
        try:
            await self.full_save()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "Scheduled full save failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    async def schedule_stats_save(self) -> bool:
        """
        Debounced save trigger for stats mutations.

        Returns True if a full save ran, False if the last sync is still
        within the sync interval.
        """
        if self._clock() - self.last_sync <= self.settings.stats_sync_interval_seconds:
            return False
        # Claim the slot before the first await
        self.last_sync = self._clock()
        await self.scheduled_full_save()
        return True

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        if self._save_task is None:
            self._save_task = PeriodicTask(
                "full-save",
                self.settings.full_save_interval_seconds,
                self.scheduled_full_save,
            )
        self._save_task.start()

    async def shutdown(self, flush: bool = True) -> None:
        """Stop the background save task, then optionally flush once more."""
        if self._save_task is not None:
            await self._save_task.stop()
        if flush and self.state is not SyncState.UNINITIALIZED:
            await self.scheduled_full_save()

    # =========================================================================
    # ADMINS
    # =========================================================================

    @property
    def admins(self) -> Dict[str, str]:
        return dict(self._admins)

    def add_admin(self, auth: str, name: str) -> None:
        self._admins[auth] = name

    def remove_admin(self, auth: str) -> bool:
        return self._admins.pop(auth, None) is not None

    def is_admin(self, auth: Optional[str]) -> bool:
        return auth is not None and auth in self._admins

    # =========================================================================
    # UNIFORMS
    # =========================================================================

    @property
    def uniforms(self) -> Dict[str, Dict[str, Any]]:
        """Built-in uniforms overlaid with custom ones."""
        merged = copy.deepcopy(DEFAULT_UNIFORMS)
        merged.update(copy.deepcopy(self._custom_uniforms))
        return merged

    def get_uniform(self, name: str) -> Optional[Dict[str, Any]]:
        key = name.lower()
        if key in self._custom_uniforms:
            return copy.deepcopy(self._custom_uniforms[key])
        if key in DEFAULT_UNIFORMS:
            return copy.deepcopy(DEFAULT_UNIFORMS[key])
        return None

    def set_custom_uniform(self, name: str, uniform: Dict[str, Any]) -> None:
        missing = {"angle", "text_color", "colors"} - set(uniform)
        if missing:
            raise ValueError(f"Uniform {name!r} is missing fields: {sorted(missing)}")
        self._custom_uniforms[name.lower()] = dict(uniform)

    # =========================================================================
    # STATS
    # =========================================================================

    def get_player_stats(self, player: str) -> Optional[Dict[str, float]]:
        stats = self._stats.get(player)
        return dict(stats) if stats is not None else None

    async def record_stats(self, player: str, **deltas: float) -> Dict[str, float]:
        """Add counter deltas for `player`, then run the debounced save trigger."""
        stats = self._stats.setdefault(player, {})
        for counter, delta in deltas.items():
            stats[counter] = stats.get(counter, 0) + delta

        updated = dict(stats)
        await self.schedule_stats_save()
        return updated
