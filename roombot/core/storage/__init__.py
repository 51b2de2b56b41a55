"""Local durable storage."""

from roombot.core.storage.backup import BackupRecord, BackupStore

__all__ = ["BackupStore", "BackupRecord"]
