"""
Typed settings bundles handed to each persistence component.

Components never read global configuration themselves; the application
context builds these once at startup (``from_config()``) and tests build
them directly with whatever values they need.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from roombot.core.config.config import Config
from roombot.core.config.manager import ConfigManager


@dataclass(frozen=True, slots=True)
class CacheSettings:
    messages_capacity: int = 100
    players_capacity: int = 500
    stats_ttl_seconds: float = 5 * 60
    cleanup_interval_seconds: float = 10 * 60

    @classmethod
    def from_config(cls) -> "CacheSettings":
        return cls(
            messages_capacity=int(ConfigManager.get("cache.messages_capacity", 100)),
            players_capacity=int(ConfigManager.get("cache.players_capacity", 500)),
            stats_ttl_seconds=float(ConfigManager.get("cache.stats_ttl_seconds", 300)),
            cleanup_interval_seconds=float(
                ConfigManager.get("cache.cleanup_interval_seconds", 600)
            ),
        )


@dataclass(frozen=True, slots=True)
class RetrySettings:
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 5.0
    jitter: bool = False

    @classmethod
    def from_config(cls) -> "RetrySettings":
        return cls(
            max_retries=int(ConfigManager.get("remote.retry.max_retries", 3)),
            base_delay_seconds=float(ConfigManager.get("remote.retry.base_delay_seconds", 1.0)),
            max_delay_seconds=float(ConfigManager.get("remote.retry.max_delay_seconds", 5.0)),
            jitter=bool(ConfigManager.get("remote.retry.jitter", False)),
        )


@dataclass(frozen=True, slots=True)
class RemoteStoreSettings:
    owner: str
    repo: str
    token: str
    branch: str = "main"
    api_base_url: str = "https://api.github.com"
    request_timeout_seconds: float = 30.0
    # None keeps waiting for as long as the server reports an exhausted quota
    max_rate_limit_waits: Optional[int] = None
    retry: RetrySettings = RetrySettings()

    @classmethod
    def from_config(cls) -> "RemoteStoreSettings":
        max_waits = ConfigManager.get("remote.rate_limit.max_waits", None)
        return cls(
            owner=Config.GITHUB_OWNER,
            repo=Config.GITHUB_REPO,
            token=Config.GITHUB_TOKEN,
            branch=Config.GITHUB_BRANCH,
            api_base_url=Config.GITHUB_API_BASE_URL,
            request_timeout_seconds=float(ConfigManager.get("remote.request_timeout_seconds", 30)),
            max_rate_limit_waits=int(max_waits) if max_waits is not None else None,
            retry=RetrySettings.from_config(),
        )


@dataclass(frozen=True, slots=True)
class BackupSettings:
    directory: Path
    staleness_seconds: float = 24 * 60 * 60

    @classmethod
    def from_config(cls) -> "BackupSettings":
        return cls(
            directory=Config.BACKUP_DIR,
            staleness_seconds=float(ConfigManager.get("backup.staleness_seconds", 86400)),
        )


@dataclass(frozen=True, slots=True)
class SyncSettings:
    admins_path: str = "admins.json"
    uniforms_path: str = "uniforms.json"
    stats_path: str = "stats.json"
    full_save_interval_seconds: float = 5 * 60
    stats_sync_interval_seconds: float = 5 * 60

    @classmethod
    def from_config(cls) -> "SyncSettings":
        return cls(
            admins_path=Config.ADMINS_PATH,
            uniforms_path=Config.UNIFORMS_PATH,
            stats_path=Config.STATS_PATH,
            full_save_interval_seconds=float(
                ConfigManager.get("sync.full_save_interval_seconds", 300)
            ),
            stats_sync_interval_seconds=float(
                ConfigManager.get("sync.stats_sync_interval_seconds", 300)
            ),
        )
