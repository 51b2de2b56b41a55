"""Unit tests for ApplicationContext wiring and lifecycle."""

import pytest

from roombot.core.config.config import Config
from roombot.core.infra.application_context import ApplicationContext
from roombot.core.remote.client import RemoteStoreClient
from roombot.core.sync.coordinator import SyncState

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


@pytest.fixture
def offline_remote(mocker):
    """Remote store that is down: every load falls through to backup/defaults."""

    async def request(self, endpoint, method="GET", payload=None, params=None):
        raise ConnectionError("offline")

    mocker.patch.object(RemoteStoreClient, "request", request)


async def test_initialize_and_shutdown_with_remote_down(offline_remote, monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "BACKUP_DIR", tmp_path / "backups")
    context = ApplicationContext(config_dir=Config.PROJECT_ROOT / "config")

    await context.initialize()
    try:
        assert context.is_initialized
        assert context.sync.state is SyncState.READY
        assert context.sync.degraded == {"admins.json", "uniforms.json", "stats.json"}
        assert context.cache.sweeper.is_running
        assert context.backup.directory == tmp_path / "backups"
    finally:
        await context.shutdown()

    assert not context.is_initialized
    assert not context.cache.sweeper.is_running
    # The final flush still wrote local backups
    assert context.backup.exists("admins.json")


async def test_initialize_twice_is_an_error(offline_remote, monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "BACKUP_DIR", tmp_path / "backups")
    context = ApplicationContext()
    await context.initialize()
    try:
        with pytest.raises(RuntimeError):
            await context.initialize()
    finally:
        await context.shutdown()


async def test_shutdown_before_initialize_is_safe():
    await ApplicationContext().shutdown()
