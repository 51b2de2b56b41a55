"""
Application Context - roombot infrastructure orchestration
==========================================================

Purpose
-------
Build the persistence stack once at process start and tear it down in
reverse order at shutdown.

Responsibilities
----------------
- Load YAML tunables (ConfigManager) and build typed settings
- Construct CacheManager, BackupStore, RemoteStoreClient, SyncCoordinator
- Start and stop background tasks (cache sweep, periodic full save)
- Structured lifecycle logging with timing

Non-Responsibilities
--------------------
- Command handling and game events (room layer)

Architecture Notes
------------------
Every component is an explicit instance owned by this context and handed to
whoever needs it. There are no module-level singletons.

Initialization Order:
    1. ConfigManager
    2. CacheManager, BackupStore
    3. RemoteStoreClient
    4. SyncCoordinator (initial load)
    5. Background tasks

Shutdown Order (Reverse):
    1. SyncCoordinator.shutdown() (stops schedule, final flush)
    2. CacheManager.stop()
    3. RemoteStoreClient.close()
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from roombot.core.cache.manager import CacheManager
from roombot.core.config.manager import ConfigManager
from roombot.core.config.settings import (
    BackupSettings,
    CacheSettings,
    RemoteStoreSettings,
    SyncSettings,
)
from roombot.core.logging.logger import get_logger
from roombot.core.remote.client import RemoteStoreClient
from roombot.core.storage.backup import BackupStore
from roombot.core.sync.coordinator import SyncCoordinator
from roombot.room.state import RoomState

logger = get_logger(__name__)


class ApplicationContext:
    """
    Owner of the persistence stack's lifecycle.

    Usage:
        context = ApplicationContext()
        await context.initialize()
        ...
        await context.shutdown()
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir = config_dir
        self.cache: Optional[CacheManager] = None
        self.backup: Optional[BackupStore] = None
        self.remote: Optional[RemoteStoreClient] = None
        self.sync: Optional[SyncCoordinator] = None
        self.room_state: Optional[RoomState] = None
        self._initialized: bool = False

        logger.debug("ApplicationContext created")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Build and start every component in dependency order.

        Raises:
            RuntimeError: If already initialized
        """
        if self._initialized:
            raise RuntimeError("ApplicationContext already initialized")

        logger.info("=" * 70)
        logger.info("APPLICATION CONTEXT INITIALIZATION")
        logger.info("=" * 70)
        start_time = time.perf_counter()

        step_start = time.perf_counter()
        ConfigManager.load(self._config_dir)
        logger.info("✓ ConfigManager loaded (%.2fms)", (time.perf_counter() - step_start) * 1000)

        self.cache = CacheManager(CacheSettings.from_config())
        self.backup = BackupStore(BackupSettings.from_config())
        logger.info("✓ Cache and backup store ready (backup dir: %s)", self.backup.directory)

        self.remote = RemoteStoreClient(RemoteStoreSettings.from_config(), self.cache, self.backup)
        logger.info("✓ Remote store client ready")

        self.sync = SyncCoordinator(SyncSettings.from_config(), self.remote)
        step_start = time.perf_counter()
        await self.sync.initialize()
        logger.info(
            "✓ Sync coordinator loaded (%.2fms, degraded=%s)",
            (time.perf_counter() - step_start) * 1000,
            sorted(self.sync.degraded) or "none",
        )

        self.room_state = RoomState()

        self.cache.start()
        self.sync.start()
        logger.info("✓ Background tasks started")

        self._initialized = True
        logger.info("=" * 70)
        logger.info(
            "✓ APPLICATION CONTEXT READY (%.2fms)", (time.perf_counter() - start_time) * 1000
        )
        logger.info("=" * 70)

    # ========================================================================
    # SHUTDOWN
    # ========================================================================

    async def shutdown(self) -> None:
        """Stop background work, flush data, release the HTTP session."""
        logger.info("APPLICATION CONTEXT SHUTDOWN START")
        start_time = time.perf_counter()

        if self.sync is not None:
            try:
                await self.sync.shutdown(flush=True)
                logger.info("✓ Sync coordinator stopped")
            except Exception as exc:
                logger.error("Sync coordinator shutdown error: %s", exc, exc_info=True)

        if self.cache is not None:
            try:
                await self.cache.stop()
                logger.info("✓ Cache sweep stopped")
            except Exception as exc:
                logger.error("Cache shutdown error: %s", exc, exc_info=True)

        if self.remote is not None:
            try:
                await self.remote.close()
                logger.info("✓ Remote store client closed")
            except Exception as exc:
                logger.error("Remote client shutdown error: %s", exc, exc_info=True)

        self._initialized = False
        logger.info(
            "APPLICATION CONTEXT SHUTDOWN COMPLETE (%.2fms)",
            (time.perf_counter() - start_time) * 1000,
        )
