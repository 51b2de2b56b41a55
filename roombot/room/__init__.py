"""Room-facing layer: session state and player-facing errors."""

from roombot.room.errors import BotError, ErrorType, handle_error
from roombot.room.state import RoomState

__all__ = ["BotError", "ErrorType", "handle_error", "RoomState"]
