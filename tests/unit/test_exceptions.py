"""Unit tests for the infrastructure exception hierarchy and helpers."""

import asyncio

import aiohttp
import pytest

from roombot.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    LoadFailed,
    RateLimited,
    RemoteNotFound,
    RemoteStatusError,
    RequestFailed,
    RoomBotInfrastructureException,
    SaveFailed,
    is_transient_error,
    should_alert,
)

pytestmark = pytest.mark.unit


class TestRemoteStatusError:
    @pytest.mark.parametrize("status", [500, 502, 503, 403, 429])
    def test_server_and_throttle_statuses_are_retryable(self, status):
        assert RemoteStatusError("/x", status).is_retryable

    @pytest.mark.parametrize("status", [400, 401, 404, 409, 422])
    def test_client_statuses_are_not_retryable(self, status):
        assert not RemoteStatusError("/x", status).is_retryable


class TestHierarchy:
    def test_not_found_is_a_request_failure(self):
        error = RemoteNotFound("/repos/o/r/contents/a.json")

        assert isinstance(error, RequestFailed)
        assert error.status == 404
        assert error.error_code == "REMOTE_NOT_FOUND"
        assert not error.is_retryable

    def test_load_and_save_failures_carry_path_and_cause(self):
        cause = ConnectionError("down")

        for error in (LoadFailed("stats.json", cause), SaveFailed("stats.json", cause)):
            assert error.path == "stats.json"
            assert error.cause is cause
            assert "stats.json" in str(error)

    def test_to_dict(self):
        payload = RateLimited("/x", waits=3, reset_at=123.0).to_dict()

        assert payload["error_type"] == "RateLimited"
        assert payload["error_code"] == "RATE_LIMITED"
        assert payload["details"]["waits"] == 3
        assert payload["severity"] == "warning"

    def test_configuration_error(self):
        error = ConfigurationError("GITHUB_TOKEN", "missing")

        assert error.config_key == "GITHUB_TOKEN"
        assert error.severity is ErrorSeverity.CRITICAL


class TestHelpers:
    @pytest.mark.parametrize(
        "error",
        [
            aiohttp.ClientConnectionError("reset"),
            asyncio.TimeoutError(),
            ConnectionResetError(),
            RemoteStatusError("/x", 503),
        ],
    )
    def test_transient(self, error):
        assert is_transient_error(error)

    @pytest.mark.parametrize(
        "error",
        [ValueError("bad"), RemoteStatusError("/x", 401), RemoteNotFound("/x")],
    )
    def test_not_transient(self, error):
        assert not is_transient_error(error)

    def test_should_alert(self):
        assert should_alert(SaveFailed("a", None))
        assert not should_alert(RemoteNotFound("/x"))
        assert not should_alert(RoomBotInfrastructureException("m", severity=ErrorSeverity.INFO))
        assert should_alert(RuntimeError("unknown"))
