"""Durable local snapshot store used as the fallback for remote documents."""

from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from tempfile import TemporaryDirectory
from typing import Any, Callable, Dict, Optional

from roombot.core.config.settings import BackupSettings
from roombot.core.constants import BACKUP_SUFFIX
from roombot.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BackupRecord:
    path: str
    data: Any
    written_at: float

    def age_seconds(self, now: float) -> float:
        return now - self.written_at


class BackupStore:
    """
    One JSON snapshot per logical path, overwritten in place.

    On disk a record lives at ``<directory>/<path>.backup.json`` and holds
    ``{"data": <document>, "timestamp": <epoch-ms>}``. A record older than
    the staleness window reads as absent.
    """

    def __init__(
        self,
        settings: BackupSettings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.directory = Path(settings.directory)
        self._clock = clock
        self._last_written_ms: Dict[str, int] = {}

        self.directory.mkdir(parents=True, exist_ok=True)

    def _file_for(self, path: str) -> Path:
        logical = PurePosixPath(path)
        if not path or logical.is_absolute() or ".." in logical.parts:
            raise ValueError(f"Invalid backup path: {path!r}")
        return self.directory.joinpath(*logical.parts[:-1], logical.name + BACKUP_SUFFIX)

    # =========================================================================
    # WRITE
    # =========================================================================

    def save(self, path: str, data: Any) -> BackupRecord:
        """
        Write `data` for `path`, replacing any earlier record atomically.

        The timestamp never goes backwards for a path, even if the wall
        clock does.
        """
        target = self._file_for(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        timestamp_ms = int(self._clock() * 1000)
        previous_ms = self._last_written_ms.get(path)
        if previous_ms is None:
            existing = self.load_record(path)
            previous_ms = int(existing.written_at * 1000) if existing else None
        if previous_ms is not None and timestamp_ms < previous_ms:
            timestamp_ms = previous_ms

        body = json.dumps({"data": data, "timestamp": timestamp_ms}, indent=2, ensure_ascii=False)

        # Write inside the destination directory so os.replace() stays atomic
        with TemporaryDirectory(dir=target.parent) as tmp_dir:
            tmp_file = Path(tmp_dir) / target.name
            tmp_file.write_text(body, encoding="utf-8")
            os.replace(tmp_file, target)

        self._last_written_ms[path] = timestamp_ms
        logger.debug("Backup written", extra={"path": path, "timestamp_ms": timestamp_ms})
        return BackupRecord(path=path, data=data, written_at=timestamp_ms / 1000)

    # =========================================================================
    # READ
    # =========================================================================

    def load_record(self, path: str) -> Optional[BackupRecord]:
        """Return the raw record regardless of age, or None if unreadable."""
        target = self._file_for(path)
        try:
            raw = json.loads(target.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning(
                "Backup unreadable; treating as missing",
                extra={"path": path, "error": str(exc), "error_type": type(exc).__name__},
            )
            return None

        if not isinstance(raw, dict) or "data" not in raw or "timestamp" not in raw:
            logger.warning("Backup has unexpected shape; treating as missing", extra={"path": path})
            return None

        try:
            written_at = float(raw["timestamp"]) / 1000
        except (TypeError, ValueError):
            logger.warning(
                "Backup timestamp is not a number; treating as missing",
                extra={"path": path, "raw_timestamp": repr(raw["timestamp"])},
            )
            return None

        return BackupRecord(path=path, data=raw["data"], written_at=written_at)

    def load(self, path: str) -> Optional[Any]:
        """Return the snapshot data, or None when missing or stale."""
        record = self.load_record(path)
        if record is None:
            return None

        age = record.age_seconds(self._clock())
        if age > self.settings.staleness_seconds:
            logger.info(
                "Backup is stale; ignoring",
                extra={"path": path, "age_seconds": round(age, 1)},
            )
            return None
        return record.data

    def exists(self, path: str) -> bool:
        return self._file_for(path).exists()
