"""Session state of the game room: players, session admins, moderation, team colors."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from roombot.core.constants import DEFAULT_TEAM_COLORS
from roombot.core.logging.logger import get_logger
from roombot.room.errors import BotError, ErrorType

logger = get_logger(__name__)

VALID_TEAMS = (1, 2)


@dataclass(slots=True)
class MuteInfo:
    until: float
    warnings: int = 0


class RoomState:
    """
    Mutable, in-process state for one room session.

    Nothing here is persisted; permanent admins live in SyncCoordinator.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

        self.admin_password: Optional[str] = None
        self._session_admins: List[int] = []
        self._banned: List[int] = []
        self._mutes: Dict[int, MuteInfo] = {}

        self._player_names: Dict[int, str] = {}
        self._player_auth: Dict[int, str] = {}

        self.team_colors: Dict[int, Optional[int]] = {team: None for team in VALID_TEAMS}

    # -- admins ---------------------------------------------------------------

    def set_admin_password(self, password: str) -> None:
        if not password:
            raise BotError(ErrorType.AUTH, "INVALID_PASSWORD", "Password cannot be empty")
        self.admin_password = password

    def check_admin_password(self, attempt: str) -> bool:
        return self.admin_password is not None and attempt == self.admin_password

    def add_admin(self, player_id: int) -> None:
        if player_id not in self._session_admins:
            self._session_admins.append(player_id)

    def remove_admin(self, player_id: int) -> None:
        self._session_admins = [pid for pid in self._session_admins if pid != player_id]

    def is_admin(self, player_id: int) -> bool:
        return player_id in self._session_admins

    # -- players --------------------------------------------------------------

    def add_player(self, player_id: int, name: str, auth: Optional[str] = None) -> None:
        self._player_names[player_id] = name
        if auth:
            self._player_auth[player_id] = auth

    def remove_player(self, player_id: int) -> None:
        self._player_names.pop(player_id, None)
        self._player_auth.pop(player_id, None)

    def get_player_name(self, player_id: int) -> Optional[str]:
        return self._player_names.get(player_id)

    def get_player_auth(self, player_id: int) -> Optional[str]:
        return self._player_auth.get(player_id)

    # -- moderation -----------------------------------------------------------

    def ban_player(self, player_id: int) -> None:
        if player_id not in self._banned:
            self._banned.append(player_id)
            logger.info("Player banned", extra={"player_id": player_id})

    def unban_player(self, player_id: int) -> None:
        self._banned = [pid for pid in self._banned if pid != player_id]

    def is_banned(self, player_id: int) -> bool:
        return player_id in self._banned

    def mute_player(self, player_id: int, duration_seconds: float) -> MuteInfo:
        info = MuteInfo(until=self._clock() + duration_seconds)
        self._mutes[player_id] = info
        logger.info(
            "Player muted",
            extra={"player_id": player_id, "duration_seconds": duration_seconds},
        )
        return info

    def unmute_player(self, player_id: int) -> None:
        self._mutes.pop(player_id, None)

    def is_muted(self, player_id: int) -> bool:
        """True while a mute is active; an expired mute is dropped on read."""
        info = self._mutes.get(player_id)
        if info is None:
            return False
        if self._clock() > info.until:
            self.unmute_player(player_id)
            return False
        return True

    # -- teams ----------------------------------------------------------------

    def set_team_color(self, team: int, color: int) -> None:
        if team not in VALID_TEAMS:
            raise BotError(ErrorType.GAME, "INVALID_TEAM", f"Invalid team number: {team}")
        self.team_colors[team] = color

    def get_team_color(self, team: int) -> int:
        if team not in VALID_TEAMS:
            raise BotError(ErrorType.GAME, "INVALID_TEAM", f"Invalid team number: {team}")
        color = self.team_colors.get(team)
        return color if color is not None else DEFAULT_TEAM_COLORS[team]
