"""
Row contracts returned by the ranking engine.

Rates are percentages in the 0-100 range. Field names follow the column
aliases of the SQL implementation so rows scan straight into these models.
"""

from pydantic import Field

from .common import BaseContract


class ModeCount(BaseContract):
    """Most frequent value of a column within one group, and how often it occurred."""

    count: int = Field(..., ge=0)
    mode: int | str


class OtherPlayerRanking(BaseContract):
    """How often another player shared a match with the ranked user."""

    user_id: int
    count: int = Field(..., ge=0)
    percent: float = Field(..., ge=0)


class PlayerRanking(BaseContract):
    """Win-rate leaderboard row."""

    user_id: int
    win: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0, le=100)


class TeammateRanking(BaseContract):
    """Joint win rate of a pair of players sharing a role."""

    user_id: int
    teammate_id: int
    total: int = Field(..., ge=0)
    win: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0, le=100)


class WorstTeammateRanking(BaseContract):
    """Joint loss rate of a pair of players sharing a role."""

    user_id: int
    teammate_id: int
    total: int = Field(..., ge=0)
    loss: int = Field(..., ge=0)
    loss_rate: float = Field(..., ge=0, le=100)


class UserActionRanking(BaseContract):
    """How often a user performed an action, next to their win rate in that role."""

    user_id: int
    total_action: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0, le=100)


class FirstTargetRanking(BaseContract):
    """How often a user was the first player hit by an action in a match."""

    user_id: int
    total_death: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    death_rate: float = Field(..., ge=0)


class KilledByRanking(BaseContract):
    """How often a crewmate died in matches shared with a given imposter."""

    user_id: int
    imposter_id: int
    total_death: int = Field(..., ge=0)
    encounter: int = Field(..., ge=0)
    death_rate: float = Field(..., ge=0, le=100)
