"""Startup load and periodic persistence of room data."""

from roombot.core.sync.coordinator import SyncCoordinator, SyncState

__all__ = ["SyncCoordinator", "SyncState"]
