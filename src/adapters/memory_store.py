"""In-memory stats store for development and testing without PostgreSQL.

Holds the three match tables as plain lists and answers every ranking with
the pure functions in ``src.core.stats.rankings``, so its results match the
SQL adapter row for row.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from src.contracts.common import GameRole
from src.contracts.game import (
    MatchRecord,
    PlayerAction,
    RawEvent,
    UserOutcomeRecord,
)
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
from src.core.metrics import mark_query_outcome
from src.core.ports import UNKNOWN_COUNT, Snowflake, StatsStorePort
from src.core.stats import rankings
from src.core.stats.classifier import result_codes_for_role
from src.core.utils.snowflake import to_snowflake

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryStatsAdapter(StatsStorePort):
    """StatsStorePort backed by in-process lists.

    Malformed identifiers are reported the same way the database adapter
    reports them: logged, then answered with the operation's sentinel.
    """

    def __init__(
        self,
        games: Iterable[MatchRecord] = (),
        events: Iterable[RawEvent] = (),
        users_games: Iterable[UserOutcomeRecord] = (),
    ) -> None:
        self.games: dict[int, MatchRecord] = {g.game_id: g for g in games}
        self.events: list[RawEvent] = list(events)
        self.users_games: list[UserOutcomeRecord] = list(users_games)
        logger.info(
            "InMemoryStatsAdapter initialized with %d games, %d events, %d outcome rows",
            len(self.games),
            len(self.events),
            len(self.users_games),
        )

    # ===== Loading =====

    def add_game(self, game: MatchRecord) -> None:
        self.games[game.game_id] = game

    def add_event(self, event: RawEvent) -> None:
        self.events.append(event)

    def add_user_game(self, row: UserOutcomeRecord) -> None:
        self.users_games.append(row)

    def _run(self, op: str, sentinel: T, fn: Callable[..., T], *ids: Any) -> T:
        try:
            parsed = [to_snowflake(i) for i in ids]
            result = fn(*parsed)
        except ValueError as e:
            logger.error(f"Error running {op}: {e}")
            mark_query_outcome(op, "error")
            return sentinel
        mark_query_outcome(op, "success")
        return result

    def _finished_games(self) -> list[MatchRecord]:
        return [g for g in self.games.values() if g.is_finished]

    # ===== Rows for single-match reduction =====

    async def get_game(self, game_id: Snowflake) -> MatchRecord | None:
        return self._run("get_game", None, self.games.get, game_id)

    async def get_game_events(self, game_id: Snowflake) -> list[RawEvent]:
        def load(gid: int) -> list[RawEvent]:
            found = [e for e in self.events if e.game_id == gid]
            return sorted(found, key=lambda e: (e.event_time, e.event_id))

        return self._run("get_game_events", [], load, game_id)

    async def get_users_games(self, game_id: Snowflake) -> list[UserOutcomeRecord]:
        return self._run(
            "get_users_games",
            [],
            lambda gid: [r for r in self.users_games if r.game_id == gid],
            game_id,
        )

    # ===== Scalar counts =====

    async def num_games_played_on_guild(self, guild_id: Snowflake) -> int:
        return self._run(
            "num_games_played_on_guild",
            UNKNOWN_COUNT,
            lambda gid: sum(1 for g in self._finished_games() if g.guild_id == gid),
            guild_id,
        )

    async def num_games_won_as_role_on_guild(self, guild_id: Snowflake, role: GameRole) -> int:
        codes = set(result_codes_for_role(GameRole(role)))
        return self._run(
            "num_games_won_as_role_on_guild",
            UNKNOWN_COUNT,
            lambda gid: sum(1 for g in self.games.values() if g.guild_id == gid and g.win_type in codes),
            guild_id,
        )

    def _count_rows(self, op: str, ids: dict[str, Snowflake], **criteria: Any) -> int:
        keys = list(ids)
        return self._run(
            op,
            UNKNOWN_COUNT,
            lambda *parsed: len(
                rankings.filter_rows(self.users_games, **dict(zip(keys, parsed)), **criteria)
            ),
            *ids.values(),
        )

    async def num_games_played_by_user(self, user_id: Snowflake) -> int:
        return self._count_rows("num_games_played_by_user", {"user_id": user_id})

    async def num_guilds_played_in_by_user(self, user_id: Snowflake) -> int:
        return self._run(
            "num_guilds_played_in_by_user",
            UNKNOWN_COUNT,
            lambda uid: len({r.guild_id for r in rankings.filter_rows(self.users_games, user_id=uid)}),
            user_id,
        )

    async def num_games_played_by_user_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        return self._count_rows(
            "num_games_played_by_user_on_guild", {"user_id": user_id, "guild_id": guild_id}
        )

    async def num_wins_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        return self._count_rows(
            "num_wins_as_role_on_guild",
            {"user_id": user_id, "guild_id": guild_id},
            role=role,
            won=True,
        )

    async def num_wins_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        return self._count_rows("num_wins_as_role", {"user_id": user_id}, role=role, won=True)

    async def num_games_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        return self._count_rows(
            "num_games_as_role_on_guild", {"user_id": user_id, "guild_id": guild_id}, role=role
        )

    async def num_games_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        return self._count_rows("num_games_as_role", {"user_id": user_id}, role=role)

    async def num_wins_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        return self._count_rows(
            "num_wins_on_guild", {"user_id": user_id, "guild_id": guild_id}, won=True
        )

    async def num_wins(self, user_id: Snowflake) -> int:
        return self._count_rows("num_wins", {"user_id": user_id}, won=True)

    # ===== Mode rankings =====

    async def color_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        return self._run(
            "color_ranking_for_player_on_guild",
            [],
            lambda uid, gid: rankings.mode_ranking(
                rankings.filter_rows(self.users_games, user_id=uid, guild_id=gid), "player_color"
            ),
            user_id,
            guild_id,
        )

    async def names_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        return self._run(
            "names_ranking_for_player_on_guild",
            [],
            lambda uid, gid: rankings.mode_ranking(
                rankings.filter_rows(self.users_games, user_id=uid, guild_id=gid), "player_name"
            ),
            user_id,
            guild_id,
        )

    async def total_games_ranking_for_guild(self, guild_id: Snowflake) -> list[ModeCount]:
        return self._run(
            "total_games_ranking_for_guild",
            [],
            lambda gid: rankings.mode_ranking(
                rankings.filter_rows(self.users_games, guild_id=gid), "user_id"
            ),
            guild_id,
        )

    async def other_players_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[OtherPlayerRanking]:
        return self._run(
            "other_players_ranking_for_player_on_guild",
            [],
            lambda uid, gid: rankings.other_players_ranking(self.users_games, uid, gid),
            user_id,
            guild_id,
        )

    # ===== Win-rate leaderboards =====

    async def total_win_ranking_for_guild(
        self, guild_id: Snowflake, role: GameRole | None = None
    ) -> list[PlayerRanking]:
        return self._run(
            "total_win_ranking_for_guild",
            [],
            lambda gid: rankings.win_ranking(self.users_games, gid, role),
            guild_id,
        )

    # ===== Paired relationships =====

    async def best_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        return self._run(
            "best_teammate_by_role",
            [],
            lambda uid, gid: rankings.best_teammates(
                self.users_games, gid, role, leaderboard_min, user_id=uid
            ),
            user_id,
            guild_id,
        )

    async def worst_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        return self._run(
            "worst_teammate_by_role",
            [],
            lambda uid, gid: rankings.worst_teammates(
                self.users_games, gid, role, leaderboard_min, user_id=uid
            ),
            user_id,
            guild_id,
        )

    async def best_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        return self._run(
            "best_teammate_for_guild_by_role",
            [],
            lambda gid: rankings.best_teammates(self.users_games, gid, role, leaderboard_min),
            guild_id,
        )

    async def worst_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        return self._run(
            "worst_teammate_for_guild_by_role",
            [],
            lambda gid: rankings.worst_teammates(self.users_games, gid, role, leaderboard_min),
            guild_id,
        )

    # ===== Action and first-incident rankings =====

    async def user_win_by_action_and_role(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, role: GameRole
    ) -> list[UserActionRanking]:
        return self._run(
            "user_win_by_action_and_role",
            [],
            lambda uid, gid: rankings.user_action_ranking(
                self.users_games, self.events, uid, gid, action, role
            ),
            user_id,
            guild_id,
        )

    async def user_frequent_first_target(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        return self._run(
            "user_frequent_first_target",
            [],
            lambda uid, gid: rankings.first_target_ranking(
                self.users_games, self.events, gid, action, leaderboard_size, user_id=uid
            ),
            user_id,
            guild_id,
        )

    async def most_frequent_first_target_for_guild(
        self, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        return self._run(
            "most_frequent_first_target_for_guild",
            [],
            lambda gid: rankings.first_target_ranking(
                self.users_games,
                self.events,
                gid,
                action,
                leaderboard_size,
                min_games=rankings.FIRST_TARGET_MIN_GAMES,
            ),
            guild_id,
        )

    async def user_most_frequent_killed_by(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[KilledByRanking]:
        return self._run(
            "user_most_frequent_killed_by",
            [],
            lambda uid, gid: rankings.killed_by_ranking(
                self.users_games, self.events, gid, user_id=uid
            ),
            user_id,
            guild_id,
        )

    async def most_frequent_killed_by_for_guild(self, guild_id: Snowflake) -> list[KilledByRanking]:
        return self._run(
            "most_frequent_killed_by_for_guild",
            [],
            lambda gid: rankings.killed_by_ranking(self.users_games, self.events, gid),
            guild_id,
        )

    # ===== Maintenance =====

    async def delete_all_games_for_guild(self, guild_id: Snowflake) -> bool:
        def delete(gid: int) -> bool:
            doomed = {g.game_id for g in self.games.values() if g.guild_id == gid}
            self.games = {k: g for k, g in self.games.items() if k not in doomed}
            self.events = [e for e in self.events if e.game_id not in doomed]
            self.users_games = [r for r in self.users_games if r.game_id not in doomed]
            logger.info("Deleted %d games for guild %s", len(doomed), gid)
            return True

        return self._run("delete_all_games_for_guild", False, delete, guild_id)

    async def delete_all_games_for_user(self, user_id: Snowflake) -> bool:
        def delete(uid: int) -> bool:
            self.users_games = [r for r in self.users_games if r.user_id != uid]
            return True

        return self._run("delete_all_games_for_user", False, delete, user_id)
