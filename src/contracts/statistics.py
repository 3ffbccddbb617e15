"""
Per-match statistics derived from raw telemetry.

``MatchStatistics`` is never persisted; it is recomputed on demand from the
stored match, its events and its outcome rows.
"""

from datetime import UTC, datetime, timedelta
from enum import IntEnum

from pydantic import Field, ValidationError

from .common import BaseContract, WinFaction
from .game import GameResult, PlayerPayload


class TimelineEntryKind(IntEnum):
    """Simplified event kinds shown on a match timeline."""

    TASKS = 0
    DISCUSS = 1
    PLAYER_DEATH = 2
    PLAYER_DISCONNECT = 3
    PLAYER_EXILED = 4


class TimelineEntry(BaseContract):
    """One simplified timeline event."""

    kind: TimelineEntryKind
    offset_seconds: int = Field(..., description="Seconds since the match started")
    data: str = Field("", description="Original payload for player-action entries")

    @property
    def offset(self) -> timedelta:
        return timedelta(seconds=self.offset_seconds)

    @property
    def player_name(self) -> str | None:
        """Name of the player the entry is about, if the payload carries one."""
        if not self.data:
            return None
        try:
            return PlayerPayload.model_validate_json(self.data).name
        except ValidationError:
            return None


def _from_unix(seconds: int) -> datetime | None:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=UTC)


class MatchStatistics(BaseContract):
    """Human-consumable statistics for one match."""

    game_start_time: int = Field(0, description="Unix seconds, 0 when the match is unknown")
    game_end_time: int = Field(0, description="Unix seconds, 0 when the match is unknown")
    game_duration: int = Field(0, description="Match duration in seconds")
    win_type: GameResult = GameResult.UNKNOWN
    win_faction: WinFaction = WinFaction.CREWMATE_DEFAULT

    winner_names: list[str] = Field(default_factory=list)
    loser_names: list[str] = Field(default_factory=list)

    num_meetings: int = Field(0, ge=0)
    num_deaths: int = Field(0, ge=0)
    num_voted_off: int = Field(0, ge=0)
    num_disconnects: int = Field(0, ge=0)

    events: list[TimelineEntry] = Field(default_factory=list)

    @property
    def started_at(self) -> datetime | None:
        return _from_unix(self.game_start_time)

    @property
    def ended_at(self) -> datetime | None:
        return _from_unix(self.game_end_time)

    @property
    def duration(self) -> timedelta:
        return timedelta(seconds=self.game_duration)

    @property
    def num_players(self) -> int:
        return len(self.winner_names) + len(self.loser_names)

    @property
    def num_killed(self) -> int:
        """Deaths that were not exiles, as the match summary reports them."""
        return self.num_deaths - self.num_voted_off
