"""Pytest configuration and fixtures for crewstats tests.

Row factories are exposed as fixtures returning callables so test modules
never import from each other.
"""

import json
from itertools import count

import pytest

from src.contracts.common import GameRole
from src.contracts.game import (
    CaptureEventType,
    GameResult,
    MatchRecord,
    PlayerAction,
    RawEvent,
    UserOutcomeRecord,
)

GUILD_ID = 140000000000000000


@pytest.fixture
def guild_id() -> int:
    return GUILD_ID


@pytest.fixture
def make_match():
    """Build a ``games`` row; defaults describe a finished crewmate win."""

    def _make(
        game_id: int = 1,
        *,
        guild_id: int = GUILD_ID,
        start_time: int = 1000,
        end_time: int = 1600,
        win_type: int = GameResult.HUMANS_BY_TASK,
        connect_code: str = "ABCDEFGH",
    ) -> MatchRecord:
        return MatchRecord(
            game_id=game_id,
            guild_id=guild_id,
            connect_code=connect_code,
            start_time=start_time,
            end_time=end_time,
            win_type=int(win_type),
        )

    return _make


@pytest.fixture
def state_event():
    """Build a phase-state event carrying a discrete phase code."""
    ids = count(1000)

    def _make(event_time: int, code: str, *, game_id: int = 1) -> RawEvent:
        return RawEvent(
            event_id=next(ids),
            user_id=None,
            game_id=game_id,
            event_time=event_time,
            event_type=int(CaptureEventType.STATE),
            payload=code,
        )

    return _make


@pytest.fixture
def player_event():
    """Build a player-action event with a JSON payload."""
    ids = count(1)

    def _make(
        event_time: int,
        action: PlayerAction,
        name: str,
        *,
        game_id: int = 1,
        user_id: int | None = None,
        event_id: int | None = None,
    ) -> RawEvent:
        payload = json.dumps(
            {
                "Action": int(action),
                "Name": name,
                "Color": 0,
                "IsDead": action == PlayerAction.DIED,
                "Disconnected": action == PlayerAction.DISCONNECTED,
            }
        )
        return RawEvent(
            event_id=event_id if event_id is not None else next(ids),
            user_id=user_id,
            game_id=game_id,
            event_time=event_time,
            event_type=int(CaptureEventType.PLAYER),
            payload=payload,
        )

    return _make


@pytest.fixture
def outcome():
    """Build a ``users_games`` row."""

    def _make(
        user_id: int,
        game_id: int,
        *,
        role: GameRole = GameRole.CREWMATE,
        won: bool = True,
        name: str = "",
        color: int = 0,
        guild_id: int = GUILD_ID,
    ) -> UserOutcomeRecord:
        return UserOutcomeRecord(
            user_id=user_id,
            guild_id=guild_id,
            game_id=game_id,
            player_name=name or f"player{user_id}",
            player_color=color,
            player_role=int(role),
            player_won=won,
        )

    return _make
