"""Match statistics service.

Connects the StatsStorePort with the pure reducer and supplies the configured
leaderboard limits to the ranking operations that need them.
"""

from __future__ import annotations

import asyncio
import logging

from src.config.settings import Settings, get_settings
from src.contracts.common import GameRole
from src.contracts.game import PlayerAction
from src.contracts.rankings import (
    FirstTargetRanking,
    KilledByRanking,
    PlayerRanking,
    TeammateRanking,
    WorstTeammateRanking,
)
from src.contracts.statistics import MatchStatistics
from src.core.ports import Snowflake, StatsStorePort
from src.core.stats.reducer import reduce_match
from src.core.utils.snowflake import parse_match_id

logger = logging.getLogger(__name__)


class MatchStatsService:
    """High-level statistics operations over a StatsStorePort."""

    def __init__(self, store: StatsStorePort, settings: Settings | None = None):
        """Initialize the service.

        Args:
            store: Storage backend (database or in-memory)
            settings: Leaderboard limits; defaults to the global settings
        """
        self.store = store
        self.settings = settings or get_settings()

    async def get_match_statistics(self, match_id: Snowflake) -> MatchStatistics | None:
        """Load a match's rows and reduce them to its statistics.

        Args:
            match_id: Game id as int or decimal string, or ``CODE:GAMEID``

        Returns:
            MatchStatistics, or None when the id cannot be parsed
        """
        try:
            game_id = parse_match_id(match_id)
        except ValueError:
            logger.warning("Invalid match id: %r", match_id)
            return None

        match, events, outcomes = await asyncio.gather(
            self.store.get_game(game_id),
            self.store.get_game_events(game_id),
            self.store.get_users_games(game_id),
        )
        if match is None:
            logger.info("Match %s not found, reporting outcomes only", game_id)
        return reduce_match(match, events, outcomes)

    async def win_leaderboard(
        self, guild_id: Snowflake, role: GameRole | None = None
    ) -> list[PlayerRanking]:
        return await self.store.total_win_ranking_for_guild(guild_id, role)

    async def best_teammates(
        self, guild_id: Snowflake, role: GameRole, user_id: Snowflake | None = None
    ) -> list[TeammateRanking]:
        """Best pairs for one user, or guild-wide when ``user_id`` is None."""
        minimum = self.settings.stats_leaderboard_min
        if user_id is None:
            return await self.store.best_teammate_for_guild_by_role(guild_id, role, minimum)
        return await self.store.best_teammate_by_role(user_id, guild_id, role, minimum)

    async def worst_teammates(
        self, guild_id: Snowflake, role: GameRole, user_id: Snowflake | None = None
    ) -> list[WorstTeammateRanking]:
        """Worst pairs for one user, or guild-wide when ``user_id`` is None."""
        minimum = self.settings.stats_leaderboard_min
        if user_id is None:
            return await self.store.worst_teammate_for_guild_by_role(guild_id, role, minimum)
        return await self.store.worst_teammate_by_role(user_id, guild_id, role, minimum)

    async def first_targets(
        self,
        guild_id: Snowflake,
        action: PlayerAction = PlayerAction.DIED,
        user_id: Snowflake | None = None,
    ) -> list[FirstTargetRanking]:
        size = self.settings.stats_leaderboard_size
        if user_id is None:
            return await self.store.most_frequent_first_target_for_guild(guild_id, action, size)
        return await self.store.user_frequent_first_target(user_id, guild_id, action, size)

    async def killed_by(
        self, guild_id: Snowflake, user_id: Snowflake | None = None
    ) -> list[KilledByRanking]:
        if user_id is None:
            return await self.store.most_frequent_killed_by_for_guild(guild_id)
        return await self.store.user_most_frequent_killed_by(user_id, guild_id)
