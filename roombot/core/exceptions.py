"""
Infrastructure exceptions for roombot.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
remote store failures, backup/remote load and save failures, rate limiting
and configuration errors.

Design Notes
------------
- All infrastructure exceptions inherit from `RoomBotInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried later
  - `error_code`: short, stable identifier for programmatic use
- `LoadFailed` and `SaveFailed` carry the logical path and the underlying
  cause; callers chain them with ``raise ... from cause``.
- Helper functions (`is_transient_error`, `should_alert`) centralize common
  exception handling patterns.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp

from roombot.core.constants import NON_RETRYABLE_STATUSES


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RoomBotInfrastructureException(Exception):
    """
    Base exception for all roombot infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise RoomBotInfrastructureException(
        ...     "Remote store unreachable",
        ...     {"endpoint": "/rate_limit"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(RoomBotInfrastructureException):
    """Raised when a configuration key is invalid or missing."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


# ============================================================================
# Remote store
# ============================================================================


class RemoteStoreError(RoomBotInfrastructureException):
    """Base class for failures talking to the remote document store."""

    DEFAULT_RETRYABLE = True


class RemoteStatusError(RemoteStoreError):
    """
    A single remote call answered with a non-success HTTP status.

    Raised per attempt; the retry loop decides whether it is transient.
    """

    def __init__(self, endpoint: str, status: int, reason: str = "") -> None:
        self.endpoint = endpoint
        self.status = status
        self.reason = reason
        super().__init__(
            f"Remote store answered {status} {reason}".rstrip(),
            details={"endpoint": endpoint, "status": status},
            is_retryable=status not in NON_RETRYABLE_STATUSES,
            error_code="REMOTE_STATUS",
        )


class MalformedResponse(RemoteStoreError):
    """The remote answered successfully but the body is not what was expected."""

    DEFAULT_RETRYABLE = False

    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(
            f"Malformed response from {endpoint}: {reason}",
            details={"endpoint": endpoint, "reason": reason},
            error_code="MALFORMED_RESPONSE",
        )


class RequestFailed(RemoteStoreError):
    """
    Raised when a remote call fails permanently.

    Either every attempt of the retry budget failed, or the remote answered
    with a status that retrying cannot fix.

    Args:
        endpoint: API endpoint that was called
        cause: The last underlying error
        attempts: Number of attempts actually made
    """

    def __init__(
        self,
        endpoint: str,
        cause: Optional[BaseException],
        attempts: int,
        status: Optional[int] = None,
    ) -> None:
        self.endpoint = endpoint
        self.cause = cause
        self.attempts = attempts
        self.status = status
        super().__init__(
            f"Remote request to {endpoint} failed after {attempts} attempt(s): {cause}",
            details={
                "endpoint": endpoint,
                "attempts": attempts,
                "status": status,
                "error_type": type(cause).__name__ if cause else None,
            },
            error_code="REQUEST_FAILED",
        )


class RemoteNotFound(RequestFailed):
    """The requested document does not exist on the remote store."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, endpoint: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(endpoint, cause, attempts=1, status=404)
        self.error_code = "REMOTE_NOT_FOUND"


class RateLimited(RemoteStoreError):
    """
    Raised only when the configured cap on rate-limit waits is exceeded.

    Without a cap, rate limiting is resolved internally by waiting for the
    quota reset and never surfaces.
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, endpoint: str, waits: int, reset_at: Optional[float]) -> None:
        self.endpoint = endpoint
        self.waits = waits
        self.reset_at = reset_at
        super().__init__(
            f"Remote quota still exhausted after {waits} wait(s) for {endpoint}",
            details={"endpoint": endpoint, "waits": waits, "reset_at": reset_at},
            error_code="RATE_LIMITED",
        )


class LoadFailed(RemoteStoreError):
    """Remote store and local backup were both unavailable (or stale)."""

    def __init__(self, path: str, cause: Optional[BaseException]) -> None:
        self.path = path
        self.cause = cause
        super().__init__(
            f"Could not load {path} from remote store or backup",
            details={"path": path, "cause": str(cause) if cause else None},
            error_code="LOAD_FAILED",
        )


class SaveFailed(RemoteStoreError):
    """
    The remote write failed after the local backup was written.

    The backup remains the only durable copy until a later save succeeds.
    """

    def __init__(self, path: str, cause: Optional[BaseException]) -> None:
        self.path = path
        self.cause = cause
        super().__init__(
            f"Could not save {path} to remote store (local backup kept)",
            details={"path": path, "cause": str(cause) if cause else None},
            error_code="SAVE_FAILED",
        )


# ============================================================================
# Helpers
# ============================================================================

TRANSIENT_EXCEPTIONS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
)


def is_transient_error(error: BaseException) -> bool:
    """Return True when retrying the same operation later may succeed."""
    if isinstance(error, RoomBotInfrastructureException):
        return error.is_retryable
    return isinstance(error, TRANSIENT_EXCEPTIONS)


def should_alert(error: BaseException) -> bool:
    """Return True when the error warrants notifying room admins."""
    if isinstance(error, RoomBotInfrastructureException):
        return error.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
    return True
