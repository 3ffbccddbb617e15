"""
Stored match data contracts.

These mirror the ``games``, ``game_events`` and ``users_games`` tables written
by the capture pipeline. They are read-only from the analytics point of view.
"""

from enum import IntEnum

from pydantic import ConfigDict, Field

from .common import BaseContract


class GameResult(IntEnum):
    """Typed win condition stored in ``games.win_type``."""

    HUMANS_BY_VOTE = 0
    HUMANS_BY_TASK = 1
    IMPOSTOR_BY_VOTE = 2
    IMPOSTOR_BY_KILL = 3
    IMPOSTOR_BY_SABOTAGE = 4
    IMPOSTOR_DISCONNECT = 5
    HUMANS_DISCONNECT = 6
    UNKNOWN = 7


class GamePhase(IntEnum):
    """Coarse game phase carried by phase-state events."""

    LOBBY = 0
    TASKS = 1
    DISCUSS = 2
    MENU = 3
    GAMEOVER = 4


class CaptureEventType(IntEnum):
    """Event-kind code stored in ``game_events.event_type``."""

    CONNECTION = 0
    LOBBY = 1
    STATE = 2
    PLAYER = 3
    GAME_OVER = 4


class PlayerAction(IntEnum):
    """``Action`` field of a player-action payload."""

    JOINED = 0
    LEFT = 1
    DIED = 2
    CHANGE_COLOR = 3
    FORCE_UPDATED = 4
    DISCONNECTED = 5
    EXILED = 6


# Discrete payload codes of the two phase-state events the timeline cares about
TASKS_CODE = str(int(GamePhase.TASKS))
DISCUSS_CODE = str(int(GamePhase.DISCUSS))

UNFINISHED_END_TIME = -1


class MatchRecord(BaseContract):
    """One row of ``games``."""

    game_id: int = Field(..., description="Match identity")
    guild_id: int = Field(..., description="Owning Discord guild")
    connect_code: str = Field("", description="Short lobby connection code")
    start_time: int = Field(..., description="Unix seconds when the match started")
    end_time: int = Field(
        UNFINISHED_END_TIME, description="Unix seconds when the match ended, -1 while running"
    )
    win_type: int = Field(int(GameResult.UNKNOWN), description="Raw win-condition code")

    @property
    def combined_id(self) -> str:
        """Identifier shown to users: ``CONNECTCODE:GAMEID``."""
        return f"{self.connect_code}:{self.game_id}"

    @property
    def is_finished(self) -> bool:
        return self.end_time != UNFINISHED_END_TIME

    @property
    def result(self) -> GameResult:
        """Typed win condition; unrecognised codes are UNKNOWN."""
        try:
            return GameResult(self.win_type)
        except ValueError:
            return GameResult.UNKNOWN


class RawEvent(BaseContract):
    """One row of ``game_events``."""

    event_id: int = Field(..., description="Event identity")
    user_id: int | None = Field(None, description="Linked user, absent for phase-state events")
    game_id: int = Field(..., description="Owning match")
    event_time: int = Field(..., description="Unix seconds when the event was captured")
    event_type: int = Field(..., description="CaptureEventType code")
    payload: str = Field("", description="Phase code or JSON player-action record")


class PlayerPayload(BaseContract):
    """JSON body of a player-action event.

    Missing keys take the zero value, so ``{}`` decodes to a JOINED action for
    an unnamed player.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore", strict=True)

    action: int = Field(int(PlayerAction.JOINED), alias="Action")
    name: str = Field("", alias="Name")
    color: int = Field(0, alias="Color")
    is_dead: bool = Field(False, alias="IsDead")
    disconnected: bool = Field(False, alias="Disconnected")


class UserOutcomeRecord(BaseContract):
    """One row of ``users_games``: a user's participation in one match."""

    user_id: int
    guild_id: int
    game_id: int
    player_name: str = Field("", description="In-game display name")
    player_color: int = Field(0, description="PlayerColor code")
    player_role: int = Field(..., description="GameRole code")
    player_won: bool
