"""
Player-facing errors and their delivery to the room.

`BotError` is what command handlers raise when something the player (or an
admin) should hear about goes wrong. `handle_error` is the single place that
turns any exception into room announcements.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Sequence

from roombot.core.exceptions import RoomBotInfrastructureException
from roombot.core.logging.logger import get_logger

logger = get_logger(__name__)

ERROR_COLOR = 0xFF0000
UNEXPECTED_ERROR_MESSAGE = "❌ An unexpected error occurred"


class ErrorType(str, Enum):
    REMOTE = "REMOTE_ERROR"
    COMMAND = "COMMAND_ERROR"
    AUTH = "AUTH_ERROR"
    GAME = "GAME_ERROR"
    NETWORK = "NETWORK_ERROR"

    @property
    def notifies_admins(self) -> bool:
        return self in (ErrorType.REMOTE, ErrorType.NETWORK)


ERROR_MESSAGES: Dict[ErrorType, Dict[str, str]] = {
    ErrorType.REMOTE: {
        "LOAD_FAILED": "❌ Could not load data from the remote store",
        "SAVE_FAILED": "❌ Could not save data to the remote store",
        "TOKEN_INVALID": "❌ Invalid remote store token",
        "REQUEST_FAILED": "❌ Remote store request failed",
        "RATE_LIMITED": "❌ Remote store quota exhausted",
        "MALFORMED_RESPONSE": "❌ The remote store sent an unexpected response",
    },
    ErrorType.COMMAND: {
        "INVALID_ARGS": "❌ Invalid arguments",
        "NO_PERMISSION": "❌ You do not have permission for this command",
        "EXECUTION_FAILED": "❌ The command failed",
    },
    ErrorType.AUTH: {
        "LOGIN_FAILED": "❌ Login failed",
        "INVALID_PASSWORD": "❌ Wrong password",
        "SESSION_EXPIRED": "❌ Session expired",
    },
    ErrorType.GAME: {
        "START_FAILED": "❌ Could not start the game",
        "PLAYER_ACTION_FAILED": "❌ Player action failed",
        "MAP_LOAD_FAILED": "❌ Could not load the map",
        "INVALID_TEAM": "❌ Invalid team",
    },
    ErrorType.NETWORK: {
        "CONNECTION_LOST": "❌ Connection lost",
        "TIMEOUT": "❌ Timed out",
        "API_ERROR": "❌ API error",
    },
}

UNKNOWN_ERROR_MESSAGE = "❌ Unknown error"


class Player(Protocol):
    id: int
    admin: bool


class Room(Protocol):
    """The subset of the game room API used for announcements."""

    def send_announcement(self, message: str, player_id: Optional[int], color: int) -> Any: ...

    def get_player_list(self) -> Sequence[Player]: ...


class BotError(Exception):
    """
    Error with a catalogued, player-safe message.

    Args:
        error_type: Category of the failure
        code: Key into ERROR_MESSAGES for that category
        details: Free-form context for logs and admins
    """

    def __init__(self, error_type: ErrorType, code: str, details: Optional[str] = None) -> None:
        self.error_type = error_type
        self.code = code
        self.details = details
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(ERROR_MESSAGES.get(error_type, {}).get(code, UNKNOWN_ERROR_MESSAGE))

    @property
    def user_message(self) -> str:
        return str(self)

    @property
    def admin_message(self) -> str:
        return (
            f"{self.user_message}\n"
            f"Type: {self.error_type.value}\n"
            f"Error: {self.code}\n"
            f"Timestamp: {self.timestamp.isoformat()}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.error_type.value,
            "code": self.code,
            "message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


def _as_bot_error(error: BaseException) -> Optional[BotError]:
    if isinstance(error, BotError):
        return error
    if isinstance(error, RoomBotInfrastructureException):
        # Infrastructure codes double as catalogue keys where one exists
        return BotError(ErrorType.REMOTE, error.error_code, details=error.message)
    return None


def handle_error(error: BaseException, room: Room, player: Optional[Player] = None) -> None:
    """
    Log `error` and announce it.

    The player who triggered it gets the user message. REMOTE and NETWORK
    errors also go to every admin in the room with full details.
    """
    bot_error = _as_bot_error(error)

    if bot_error is None:
        logger.error(
            "Unhandled error",
            extra={"error": str(error), "error_type": type(error).__name__},
            exc_info=error,
        )
        if player is not None:
            room.send_announcement(UNEXPECTED_ERROR_MESSAGE, player.id, ERROR_COLOR)
        return

    logger.error(
        "Bot error: %s",
        bot_error.user_message,
        extra={
            "error_type": bot_error.error_type.value,
            "error_code": bot_error.code,
            "details": bot_error.details,
        },
    )

    if player is not None:
        room.send_announcement(bot_error.user_message, player.id, ERROR_COLOR)

    if bot_error.error_type.notifies_admins:
        for member in room.get_player_list():
            if member.admin:
                room.send_announcement(bot_error.admin_message, member.id, ERROR_COLOR)
