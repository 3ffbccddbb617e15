"""Port interfaces for hexagonal architecture.

These ports define the contracts between the core domain and external adapters.
All external dependencies must implement these interfaces.

Every store operation is best-effort: a failed query is logged and reported
through a sentinel (-1 for counts, [] for row sets, None for single rows,
False for writes) instead of an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.contracts.common import GameRole
from src.contracts.game import MatchRecord, PlayerAction, RawEvent, UserOutcomeRecord
from src.contracts.rankings import (
    FirstTargetRanking,
    KilledByRanking,
    ModeCount,
    OtherPlayerRanking,
    PlayerRanking,
    TeammateRanking,
    UserActionRanking,
    WorstTeammateRanking,
)

__all__ = ["Snowflake", "StatsStorePort", "UNKNOWN_COUNT"]

# Discord snowflakes arrive either as ints or as their decimal string form
Snowflake = int | str

UNKNOWN_COUNT = -1


class StatsStorePort(ABC):
    """Port for match storage reads and the cross-match ranking engine."""

    # ===== Rows for single-match reduction =====

    @abstractmethod
    async def get_game(self, game_id: Snowflake) -> MatchRecord | None:
        """Load one ``games`` row."""
        pass

    @abstractmethod
    async def get_game_events(self, game_id: Snowflake) -> list[RawEvent]:
        """Load a match's events ordered by event_time, then event_id."""
        pass

    @abstractmethod
    async def get_users_games(self, game_id: Snowflake) -> list[UserOutcomeRecord]:
        """Load the per-user outcome rows of one match."""
        pass

    # ===== Scalar counts =====

    @abstractmethod
    async def num_games_played_on_guild(self, guild_id: Snowflake) -> int:
        """Finished matches recorded for a guild."""
        pass

    @abstractmethod
    async def num_games_won_as_role_on_guild(self, guild_id: Snowflake, role: GameRole) -> int:
        """Guild matches whose result credits ``role`` with the win."""
        pass

    @abstractmethod
    async def num_games_played_by_user(self, user_id: Snowflake) -> int:
        pass

    @abstractmethod
    async def num_guilds_played_in_by_user(self, user_id: Snowflake) -> int:
        pass

    @abstractmethod
    async def num_games_played_by_user_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        pass

    @abstractmethod
    async def num_wins_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        pass

    @abstractmethod
    async def num_wins_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        pass

    @abstractmethod
    async def num_games_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        pass

    @abstractmethod
    async def num_games_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        pass

    @abstractmethod
    async def num_wins_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        pass

    @abstractmethod
    async def num_wins(self, user_id: Snowflake) -> int:
        pass

    # ===== Mode rankings =====

    @abstractmethod
    async def color_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        """Colors the user played in a guild, most frequent first."""
        pass

    @abstractmethod
    async def names_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        """In-game names the user played under in a guild, most frequent first."""
        pass

    @abstractmethod
    async def total_games_ranking_for_guild(self, guild_id: Snowflake) -> list[ModeCount]:
        """Users of a guild by number of matches played (``mode`` is the user id)."""
        pass

    @abstractmethod
    async def other_players_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[OtherPlayerRanking]:
        """Players the user shared matches with, by share of the user's matches."""
        pass

    # ===== Win-rate leaderboards =====

    @abstractmethod
    async def total_win_ranking_for_guild(
        self, guild_id: Snowflake, role: GameRole | None = None
    ) -> list[PlayerRanking]:
        """Per-user win rate in a guild, optionally restricted to one role."""
        pass

    # ===== Paired relationships =====

    @abstractmethod
    async def best_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        pass

    @abstractmethod
    async def worst_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        pass

    @abstractmethod
    async def best_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        """Guild-wide pairs, each reported once with ``user_id > teammate_id``."""
        pass

    @abstractmethod
    async def worst_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        """Guild-wide pairs, each reported once with ``user_id > teammate_id``."""
        pass

    # ===== Action and first-incident rankings =====

    @abstractmethod
    async def user_win_by_action_and_role(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, role: GameRole
    ) -> list[UserActionRanking]:
        pass

    @abstractmethod
    async def user_frequent_first_target(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        pass

    @abstractmethod
    async def most_frequent_first_target_for_guild(
        self, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        pass

    @abstractmethod
    async def user_most_frequent_killed_by(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[KilledByRanking]:
        pass

    @abstractmethod
    async def most_frequent_killed_by_for_guild(self, guild_id: Snowflake) -> list[KilledByRanking]:
        pass

    # ===== Maintenance =====

    @abstractmethod
    async def delete_all_games_for_guild(self, guild_id: Snowflake) -> bool:
        pass

    @abstractmethod
    async def delete_all_games_for_user(self, user_id: Snowflake) -> bool:
        pass
