"""Database adapter using asyncpg for PostgreSQL.

This adapter implements the StatsStorePort: it loads the rows the match
reducer needs and runs the ranking engine as SQL. Every filter and ordering
rule here mirrors ``src.core.stats.rankings``.
"""

import logging
import time
from collections.abc import Sequence
from enum import IntEnum
from typing import Any, TypeVar

import asyncpg
from pydantic import BaseModel

from src.config.settings import settings
from src.contracts.common import GameRole
from src.contracts.game import (
    CaptureEventType,
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
from src.core.metrics import mark_query_outcome, observe_query_latency
from src.core.observability import debug_wrapper, trace_adapter
from src.core.ports import UNKNOWN_COUNT, Snowflake, StatsStorePort
from src.core.stats.classifier import result_codes_for_role
from src.core.stats.rankings import FIRST_TARGET_MIN_GAMES
from src.core.utils.snowflake import to_snowflake

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)

# Pair statistics shared by the teammate rankings. $1 guild, $2 role.
_PAIR_SELECT = """
    SELECT a.user_id,
           b.user_id AS teammate_id,
           COUNT(*) AS total,
           {columns}
    FROM users_games a
    INNER JOIN users_games b
        ON a.game_id = b.game_id AND a.user_id <> b.user_id
    WHERE a.guild_id = $1 AND a.player_role = $2 AND b.player_role = $2
"""

_WIN_COLUMNS = """COUNT(*) FILTER (WHERE a.player_won) AS win,
           (COUNT(*) FILTER (WHERE a.player_won))::float8 / COUNT(*) * 100 AS win_rate"""

_LOSS_COLUMNS = """COUNT(*) FILTER (WHERE NOT a.player_won) AS loss,
           (COUNT(*) FILTER (WHERE NOT a.player_won))::float8 / COUNT(*) * 100 AS loss_rate"""

# First match-level event carrying a given action. $1 action, $2 guild.
_FIRST_TARGET_SELECT = """
    SELECT ug.user_id,
           COUNT(*) AS total_death,
           totals.total,
           COUNT(*)::float8 / totals.total * 100 AS death_rate
    FROM users_games ug
    CROSS JOIN LATERAL (
        SELECT ge.user_id
        FROM game_events ge
        WHERE ge.game_id = ug.game_id
          AND ge.event_type = {player_event}
          AND ge.payload ->> 'Action' = ($1::int)::text
        ORDER BY ge.event_time, ge.event_id
        LIMIT 1
    ) first_event
    CROSS JOIN LATERAL (
        SELECT COUNT(*) AS total
        FROM users_games crew
        WHERE crew.user_id = ug.user_id
          AND crew.guild_id = $2
          AND crew.player_role = {crewmate}
    ) totals
    WHERE ug.guild_id = $2 AND ug.user_id = first_event.user_id
""".format(player_event=int(CaptureEventType.PLAYER), crewmate=int(GameRole.CREWMATE))

# Crewmate/imposter encounters with a per-match death flag. $1 guild, $2 died action.
_KILLED_BY_SELECT = """
    SELECT crew.user_id,
           imp.user_id AS imposter_id,
           COUNT(*) FILTER (WHERE died.flag) AS total_death,
           COUNT(*) AS encounter,
           (COUNT(*) FILTER (WHERE died.flag))::float8 / COUNT(*) * 100 AS death_rate
    FROM users_games crew
    INNER JOIN users_games imp
        ON imp.game_id = crew.game_id AND imp.player_role = {imposter}
    CROSS JOIN LATERAL (
        SELECT EXISTS (
            SELECT 1 FROM game_events ge
            WHERE ge.game_id = crew.game_id
              AND ge.user_id = crew.user_id
              AND ge.event_type = {player_event}
              AND ge.payload ->> 'Action' = ($2::int)::text
        ) AS flag
    ) died
    WHERE crew.guild_id = $1 AND crew.player_role = {crewmate}
""".format(
    imposter=int(GameRole.IMPOSTER),
    crewmate=int(GameRole.CREWMATE),
    player_event=int(CaptureEventType.PLAYER),
)


def _param(value: Any) -> Any:
    """Convert a query argument to its database form.

    Strings are always identifiers in this adapter; enums go in as plain ints.
    """
    if isinstance(value, str):
        return to_snowflake(value)
    if isinstance(value, IntEnum):
        return int(value)
    return value


class DatabaseAdapter(StatsStorePort):
    """StatsStorePort implementation using asyncpg.

    Features:
    - Async connection pooling for concurrent leaderboard requests
    - Idempotent schema creation on connect
    - Best-effort reads: failures are logged and reported as sentinels
    """

    def __init__(self) -> None:
        """Initialize database adapter."""
        self._pool: Any = None  # asyncpg.Pool (untyped library)
        logger.info("Database adapter initialized")

    async def connect(self) -> None:
        """Create database connection pool.

        This should be called once at application startup.
        """
        if self._pool is not None:
            logger.warning("Database pool already exists")
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=settings.database_url,
                min_size=settings.database_pool_min_size,
                max_size=settings.database_pool_size,
                max_inactive_connection_lifetime=300,
                command_timeout=settings.database_pool_timeout,
            )
            logger.info("Database connection pool created successfully")

            await self._initialize_schema()

        except Exception as e:
            logger.error(f"Failed to create database pool: {e}")
            raise

    async def disconnect(self) -> None:
        """Close database connection pool.

        This should be called at application shutdown.
        """
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    async def _initialize_schema(self) -> None:
        """Create the match tables if they don't exist."""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS games (
                    game_id BIGSERIAL PRIMARY KEY,
                    guild_id BIGINT NOT NULL,
                    connect_code VARCHAR(8) NOT NULL DEFAULT '',
                    start_time INTEGER NOT NULL,
                    win_type SMALLINT NOT NULL DEFAULT 7,
                    end_time INTEGER NOT NULL DEFAULT -1
                );

                CREATE INDEX IF NOT EXISTS idx_games_guild
                ON games(guild_id);

                CREATE TABLE IF NOT EXISTS users_games (
                    user_id BIGINT NOT NULL,
                    guild_id BIGINT NOT NULL,
                    game_id BIGINT NOT NULL REFERENCES games(game_id) ON DELETE CASCADE,
                    player_name VARCHAR(32) NOT NULL DEFAULT '',
                    player_color SMALLINT NOT NULL DEFAULT 0,
                    player_role SMALLINT NOT NULL,
                    player_won BOOLEAN NOT NULL,
                    PRIMARY KEY (user_id, game_id)
                );

                CREATE INDEX IF NOT EXISTS idx_users_games_guild_user
                ON users_games(guild_id, user_id);

                CREATE INDEX IF NOT EXISTS idx_users_games_game
                ON users_games(game_id);

                CREATE TABLE IF NOT EXISTS game_events (
                    event_id BIGSERIAL PRIMARY KEY,
                    user_id BIGINT,
                    game_id BIGINT NOT NULL REFERENCES games(game_id) ON DELETE CASCADE,
                    event_time INTEGER NOT NULL,
                    event_type SMALLINT NOT NULL,
                    payload JSONB NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_game_events_game_time
                ON game_events(game_id, event_time);
            """
            )

            logger.info("Database schema initialized")

    async def health_check(self) -> bool:
        """Return True when the pool can run a trivial query."""
        if not self._pool:
            return False
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    # ========================================================================
    # Query helpers
    # ========================================================================

    async def _count(self, op: str, query: str, *args: Any) -> int:
        """Run a scalar COUNT query; UNKNOWN_COUNT on any failure."""
        if not self._pool:
            logger.error("Database pool not initialized")
            mark_query_outcome(op, "error")
            return UNKNOWN_COUNT

        start = time.perf_counter()
        try:
            params = [_param(a) for a in args]
            async with self._pool.acquire() as conn:
                value = await conn.fetchval(query, *params)
            mark_query_outcome(op, "success")
            return int(value or 0)
        except Exception as e:
            logger.error(f"Error running {op}: {e}")
            mark_query_outcome(op, "error")
            return UNKNOWN_COUNT
        finally:
            observe_query_latency(op, time.perf_counter() - start)

    async def _rows(self, op: str, model: type[RowT], query: str, *args: Any) -> list[RowT]:
        """Run a row query and scan each row into ``model``; [] on any failure."""
        if not self._pool:
            logger.error("Database pool not initialized")
            mark_query_outcome(op, "error")
            return []

        start = time.perf_counter()
        try:
            params = [_param(a) for a in args]
            async with self._pool.acquire() as conn:
                records = await conn.fetch(query, *params)
            rows = [model.model_validate(dict(r)) for r in records]
            mark_query_outcome(op, "success")
            return rows
        except Exception as e:
            logger.error(f"Error running {op}: {e}")
            mark_query_outcome(op, "error")
            return []
        finally:
            observe_query_latency(op, time.perf_counter() - start)

    async def _execute(self, op: str, query: str, *args: Any) -> bool:
        if not self._pool:
            logger.error("Database pool not initialized")
            return False

        try:
            params = [_param(a) for a in args]
            async with self._pool.acquire() as conn:
                result = await conn.execute(query, *params)
            logger.info(f"{op} finished: {result}")
            mark_query_outcome(op, "success")
            return True
        except Exception as e:
            logger.error(f"Error running {op}: {e}")
            mark_query_outcome(op, "error")
            return False

    # ========================================================================
    # Rows for single-match reduction
    # ========================================================================

    @debug_wrapper(
        capture_result=False,
        log_level="DEBUG",
        add_metadata={"layer": "db", "table": "games", "op": "get"},
    )
    async def get_game(self, game_id: Snowflake) -> MatchRecord | None:
        """Load one ``games`` row, or None if missing or on error."""
        rows = await self._rows(
            "get_game",
            MatchRecord,
            """
            SELECT game_id, guild_id, connect_code, start_time, end_time, win_type
            FROM games
            WHERE game_id = $1
            """,
            game_id,
        )
        return rows[0] if rows else None

    @trace_adapter
    async def get_game_events(self, game_id: Snowflake) -> list[RawEvent]:
        return await self._rows(
            "get_game_events",
            RawEvent,
            """
            SELECT event_id, user_id, game_id, event_time, event_type,
                   payload::text AS payload
            FROM game_events
            WHERE game_id = $1
            ORDER BY event_time ASC, event_id ASC
            """,
            game_id,
        )

    async def get_users_games(self, game_id: Snowflake) -> list[UserOutcomeRecord]:
        return await self._rows(
            "get_users_games",
            UserOutcomeRecord,
            """
            SELECT user_id, guild_id, game_id, player_name, player_color,
                   player_role, player_won
            FROM users_games
            WHERE game_id = $1
            """,
            game_id,
        )

    # ========================================================================
    # Scalar counts
    # ========================================================================

    async def num_games_played_on_guild(self, guild_id: Snowflake) -> int:
        return await self._count(
            "num_games_played_on_guild",
            "SELECT COUNT(*) FROM games WHERE guild_id = $1 AND end_time <> -1",
            guild_id,
        )

    async def num_games_won_as_role_on_guild(self, guild_id: Snowflake, role: GameRole) -> int:
        return await self._count(
            "num_games_won_as_role_on_guild",
            "SELECT COUNT(*) FROM games WHERE guild_id = $1 AND win_type = ANY($2::smallint[])",
            guild_id,
            result_codes_for_role(GameRole(role)),
        )

    async def num_games_played_by_user(self, user_id: Snowflake) -> int:
        return await self._count(
            "num_games_played_by_user",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1",
            user_id,
        )

    async def num_guilds_played_in_by_user(self, user_id: Snowflake) -> int:
        return await self._count(
            "num_guilds_played_in_by_user",
            "SELECT COUNT(DISTINCT guild_id) FROM users_games WHERE user_id = $1",
            user_id,
        )

    async def num_games_played_by_user_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        return await self._count(
            "num_games_played_by_user_on_guild",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1 AND guild_id = $2",
            user_id,
            guild_id,
        )

    async def num_wins_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        return await self._count(
            "num_wins_as_role_on_guild",
            """
            SELECT COUNT(*) FROM users_games
            WHERE user_id = $1 AND guild_id = $2 AND player_role = $3 AND player_won = TRUE
            """,
            user_id,
            guild_id,
            role,
        )

    async def num_wins_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        return await self._count(
            "num_wins_as_role",
            """
            SELECT COUNT(*) FROM users_games
            WHERE user_id = $1 AND player_role = $2 AND player_won = TRUE
            """,
            user_id,
            role,
        )

    async def num_games_as_role_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole
    ) -> int:
        return await self._count(
            "num_games_as_role_on_guild",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1 AND guild_id = $2 AND player_role = $3",
            user_id,
            guild_id,
            role,
        )

    async def num_games_as_role(self, user_id: Snowflake, role: GameRole) -> int:
        return await self._count(
            "num_games_as_role",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1 AND player_role = $2",
            user_id,
            role,
        )

    async def num_wins_on_guild(self, user_id: Snowflake, guild_id: Snowflake) -> int:
        return await self._count(
            "num_wins_on_guild",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1 AND guild_id = $2 AND player_won = TRUE",
            user_id,
            guild_id,
        )

    async def num_wins(self, user_id: Snowflake) -> int:
        return await self._count(
            "num_wins",
            "SELECT COUNT(*) FROM users_games WHERE user_id = $1 AND player_won = TRUE",
            user_id,
        )

    # ========================================================================
    # Mode rankings
    # ========================================================================

    async def color_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        return await self._rows(
            "color_ranking_for_player_on_guild",
            ModeCount,
            """
            SELECT COUNT(*) AS count, player_color AS mode
            FROM users_games
            WHERE user_id = $1 AND guild_id = $2
            GROUP BY player_color
            ORDER BY count DESC, mode ASC
            """,
            user_id,
            guild_id,
        )

    async def names_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[ModeCount]:
        return await self._rows(
            "names_ranking_for_player_on_guild",
            ModeCount,
            """
            SELECT COUNT(*) AS count, player_name AS mode
            FROM users_games
            WHERE user_id = $1 AND guild_id = $2
            GROUP BY player_name
            ORDER BY count DESC, mode ASC
            """,
            user_id,
            guild_id,
        )

    async def total_games_ranking_for_guild(self, guild_id: Snowflake) -> list[ModeCount]:
        return await self._rows(
            "total_games_ranking_for_guild",
            ModeCount,
            """
            SELECT COUNT(*) AS count, user_id AS mode
            FROM users_games
            WHERE guild_id = $1
            GROUP BY user_id
            ORDER BY count DESC, mode ASC
            """,
            guild_id,
        )

    async def other_players_ranking_for_player_on_guild(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[OtherPlayerRanking]:
        return await self._rows(
            "other_players_ranking_for_player_on_guild",
            OtherPlayerRanking,
            """
            SELECT b.user_id,
                   COUNT(*) AS count,
                   COUNT(*)::float8 / (
                       SELECT COUNT(*) FROM users_games
                       WHERE user_id = $1 AND guild_id = $2
                   ) * 100 AS percent
            FROM users_games a
            INNER JOIN users_games b
                ON a.game_id = b.game_id AND a.user_id <> b.user_id
            WHERE a.user_id = $1 AND a.guild_id = $2
            GROUP BY b.user_id
            ORDER BY percent DESC, count DESC, b.user_id ASC
            """,
            user_id,
            guild_id,
        )

    # ========================================================================
    # Win-rate leaderboards
    # ========================================================================

    async def total_win_ranking_for_guild(
        self, guild_id: Snowflake, role: GameRole | None = None
    ) -> list[PlayerRanking]:
        # Ordered by rate only; equal rates are not broken further
        return await self._rows(
            "total_win_ranking_for_guild",
            PlayerRanking,
            """
            SELECT user_id,
                   COUNT(*) FILTER (WHERE player_won) AS win,
                   COUNT(*) AS total,
                   (COUNT(*) FILTER (WHERE player_won))::float8 / COUNT(*) * 100 AS win_rate
            FROM users_games
            WHERE guild_id = $1 AND ($2::smallint IS NULL OR player_role = $2)
            GROUP BY user_id
            ORDER BY win_rate DESC
            """,
            guild_id,
            role,
        )

    # ========================================================================
    # Paired relationships
    # ========================================================================

    async def _teammates(
        self,
        op: str,
        model: type[RowT],
        rate: str,
        count: str,
        guild_id: Snowflake,
        role: GameRole,
        leaderboard_min: int,
        user_id: Snowflake | None,
    ) -> list[RowT]:
        # Per-user rows pin a.user_id; guild-wide rows keep one canonical
        # orientation per pair (higher id first).
        pair_filter = "AND a.user_id = $4" if user_id is not None else "AND a.user_id > b.user_id"
        columns = _WIN_COLUMNS if count == "win" else _LOSS_COLUMNS
        query = f"""
            {_PAIR_SELECT.format(columns=columns)}
              {pair_filter}
            GROUP BY a.user_id, b.user_id
            HAVING COUNT(*) >= $3
            ORDER BY {rate} DESC, {count} DESC, total DESC, a.user_id ASC, teammate_id ASC
        """
        args: list[Any] = [guild_id, role, leaderboard_min]
        if user_id is not None:
            args.append(user_id)
        return await self._rows(op, model, query, *args)

    async def best_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        return await self._teammates(
            "best_teammate_by_role", TeammateRanking, "win_rate", "win",
            guild_id, role, leaderboard_min, user_id,
        )

    async def worst_teammate_by_role(
        self, user_id: Snowflake, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        return await self._teammates(
            "worst_teammate_by_role", WorstTeammateRanking, "loss_rate", "loss",
            guild_id, role, leaderboard_min, user_id,
        )

    async def best_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[TeammateRanking]:
        return await self._teammates(
            "best_teammate_for_guild_by_role", TeammateRanking, "win_rate", "win",
            guild_id, role, leaderboard_min, None,
        )

    async def worst_teammate_for_guild_by_role(
        self, guild_id: Snowflake, role: GameRole, leaderboard_min: int
    ) -> list[WorstTeammateRanking]:
        return await self._teammates(
            "worst_teammate_for_guild_by_role", WorstTeammateRanking, "loss_rate", "loss",
            guild_id, role, leaderboard_min, None,
        )

    # ========================================================================
    # Action and first-incident rankings
    # ========================================================================

    async def user_win_by_action_and_role(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, role: GameRole
    ) -> list[UserActionRanking]:
        return await self._rows(
            "user_win_by_action_and_role",
            UserActionRanking,
            f"""
            SELECT ug.user_id,
                   COALESCE(SUM(acts.n), 0)::bigint AS total_action,
                   COUNT(*) AS total,
                   (COUNT(*) FILTER (WHERE ug.player_won))::float8 / COUNT(*) * 100 AS win_rate
            FROM users_games ug
            CROSS JOIN LATERAL (
                SELECT COUNT(*) AS n
                FROM game_events ge
                WHERE ge.game_id = ug.game_id
                  AND ge.user_id = ug.user_id
                  AND ge.event_type = {int(CaptureEventType.PLAYER)}
                  AND ge.payload ->> 'Action' = ($1::int)::text
            ) acts
            WHERE ug.user_id = $2 AND ug.guild_id = $3 AND ug.player_role = $4
            GROUP BY ug.user_id
            """,
            action,
            user_id,
            guild_id,
            role,
        )

    async def user_frequent_first_target(
        self, user_id: Snowflake, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        return await self._rows(
            "user_frequent_first_target",
            FirstTargetRanking,
            f"""
            {_FIRST_TARGET_SELECT}
              AND ug.user_id = $3 AND totals.total > 0
            GROUP BY ug.user_id, totals.total
            ORDER BY death_rate DESC, total_death DESC, ug.user_id ASC
            LIMIT $4
            """,
            action,
            guild_id,
            user_id,
            leaderboard_size,
        )

    async def most_frequent_first_target_for_guild(
        self, guild_id: Snowflake, action: PlayerAction, leaderboard_size: int
    ) -> list[FirstTargetRanking]:
        return await self._rows(
            "most_frequent_first_target_for_guild",
            FirstTargetRanking,
            f"""
            {_FIRST_TARGET_SELECT}
              AND totals.total > {FIRST_TARGET_MIN_GAMES}
            GROUP BY ug.user_id, totals.total
            ORDER BY death_rate DESC, total_death DESC, ug.user_id ASC
            LIMIT $3
            """,
            action,
            guild_id,
            leaderboard_size,
        )

    async def user_most_frequent_killed_by(
        self, user_id: Snowflake, guild_id: Snowflake
    ) -> list[KilledByRanking]:
        return await self._rows(
            "user_most_frequent_killed_by",
            KilledByRanking,
            f"""
            {_KILLED_BY_SELECT}
              AND crew.user_id = $3
            GROUP BY crew.user_id, imp.user_id
            ORDER BY death_rate DESC, total_death DESC, encounter DESC,
                     crew.user_id ASC, imposter_id ASC
            """,
            guild_id,
            PlayerAction.DIED,
            user_id,
        )

    async def most_frequent_killed_by_for_guild(self, guild_id: Snowflake) -> list[KilledByRanking]:
        return await self._rows(
            "most_frequent_killed_by_for_guild",
            KilledByRanking,
            f"""
            {_KILLED_BY_SELECT}
            GROUP BY crew.user_id, imp.user_id
            ORDER BY death_rate DESC, total_death DESC, encounter DESC,
                     crew.user_id ASC, imposter_id ASC
            """,
            guild_id,
            PlayerAction.DIED,
        )

    # ========================================================================
    # Maintenance
    # ========================================================================

    @trace_adapter
    async def delete_all_games_for_guild(self, guild_id: Snowflake) -> bool:
        """Delete a guild's matches; events and outcome rows cascade."""
        return await self._execute(
            "delete_all_games_for_guild", "DELETE FROM games WHERE guild_id = $1", guild_id
        )

    @trace_adapter
    async def delete_all_games_for_user(self, user_id: Snowflake) -> bool:
        """Delete a user's outcome rows, removing them from every ranking."""
        return await self._execute(
            "delete_all_games_for_user", "DELETE FROM users_games WHERE user_id = $1", user_id
        )


def rows_to_dicts(rows: Sequence[BaseModel]) -> list[dict[str, Any]]:
    """JSON-ready dicts for ranking rows (used by the CLI output)."""
    return [r.model_dump(mode="json") for r in rows]
