"""Contract models for data validation."""

from .common import GameRole, PlayerColor, Region, WinFaction
from .game import (
    CaptureEventType,
    GamePhase,
    GameResult,
    MatchRecord,
    PlayerAction,
    PlayerPayload,
    RawEvent,
    UserOutcomeRecord,
)
from .rankings import (
    FirstTargetRanking,
    KilledByRanking,
    ModeCount,
    OtherPlayerRanking,
    PlayerRanking,
    TeammateRanking,
    UserActionRanking,
    WorstTeammateRanking,
)
from .statistics import MatchStatistics, TimelineEntry, TimelineEntryKind

__all__ = [
    "CaptureEventType",
    "FirstTargetRanking",
    "GamePhase",
    "GameResult",
    "GameRole",
    "KilledByRanking",
    "MatchRecord",
    "MatchStatistics",
    "ModeCount",
    "OtherPlayerRanking",
    "PlayerAction",
    "PlayerColor",
    "PlayerPayload",
    "PlayerRanking",
    "RawEvent",
    "Region",
    "TeammateRanking",
    "TimelineEntry",
    "TimelineEntryKind",
    "UserActionRanking",
    "UserOutcomeRecord",
    "WinFaction",
    "WorstTeammateRanking",
]
