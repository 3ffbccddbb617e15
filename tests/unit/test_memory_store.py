"""Tests for the in-memory stats store."""

import pytest

from src.adapters.memory_store import InMemoryStatsAdapter
from src.contracts.common import GameRole
from src.contracts.game import GameResult, PlayerAction
from src.core.ports import UNKNOWN_COUNT


@pytest.fixture
def store(make_match, outcome, player_event, state_event, guild_id):
    """Three finished games in one guild and a running game in another."""
    games = [
        make_match(1, win_type=GameResult.HUMANS_BY_TASK),
        make_match(2, win_type=GameResult.IMPOSTOR_BY_KILL),
        make_match(3, win_type=GameResult.HUMANS_BY_VOTE),
        make_match(4, guild_id=guild_id + 1, end_time=-1, win_type=GameResult.UNKNOWN),
    ]
    rows = [
        outcome(1, 1, won=True, name="Alice", color=2),
        outcome(2, 1, won=True, name="Bob"),
        outcome(3, 1, role=GameRole.IMPOSTER, won=False, name="Carol"),
        outcome(1, 2, won=False, name="Alice", color=2),
        outcome(2, 2, won=False, name="Bob"),
        outcome(3, 2, role=GameRole.IMPOSTER, won=True, name="Carol"),
        outcome(1, 3, won=True, name="Ally", color=5),
        outcome(2, 3, won=True, name="Bob"),
        outcome(3, 3, role=GameRole.IMPOSTER, won=False, name="Carol"),
        outcome(1, 4, won=False, name="Alice", guild_id=guild_id + 1),
    ]
    events = [
        player_event(1030, PlayerAction.DIED, "Alice", game_id=2, user_id=1),
        state_event(1010, "2", game_id=2),
        player_event(1020, PlayerAction.EXILED, "Carol", game_id=1, user_id=3),
    ]
    return InMemoryStatsAdapter(games=games, events=events, users_games=rows)


@pytest.mark.asyncio
async def test_row_loads(store):
    assert (await store.get_game("2")).win_type == GameResult.IMPOSTOR_BY_KILL
    assert await store.get_game(99) is None

    events = await store.get_game_events(2)
    assert [e.event_time for e in events] == [1010, 1030]
    assert len(await store.get_users_games(1)) == 3


@pytest.mark.asyncio
async def test_counts(store, guild_id):
    assert await store.num_games_played_on_guild(guild_id) == 3
    assert await store.num_games_won_as_role_on_guild(guild_id, GameRole.CREWMATE) == 2
    assert await store.num_games_won_as_role_on_guild(guild_id, GameRole.IMPOSTER) == 1
    assert await store.num_games_played_by_user(1) == 4
    assert await store.num_guilds_played_in_by_user(1) == 2
    assert await store.num_games_played_by_user_on_guild(1, guild_id) == 3
    assert await store.num_wins_as_role_on_guild(3, guild_id, GameRole.IMPOSTER) == 1
    assert await store.num_wins_as_role(1, GameRole.CREWMATE) == 2
    assert await store.num_games_as_role_on_guild(3, guild_id, GameRole.IMPOSTER) == 3
    assert await store.num_games_as_role(2, GameRole.IMPOSTER) == 0
    assert await store.num_wins_on_guild(2, guild_id) == 2
    assert await store.num_wins(1) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["abc", "-5", str(2**64), ""])
async def test_malformed_ids_return_sentinels(store, bad_id, guild_id):
    assert await store.num_wins(bad_id) == UNKNOWN_COUNT
    assert await store.num_games_played_by_user_on_guild(1, bad_id) == UNKNOWN_COUNT
    assert await store.best_teammate_by_role(bad_id, guild_id, GameRole.CREWMATE, 1) == []
    assert await store.get_game(bad_id) is None
    assert await store.delete_all_games_for_user(bad_id) is False


@pytest.mark.asyncio
async def test_mode_rankings(store, guild_id):
    colors = await store.color_ranking_for_player_on_guild(1, guild_id)
    names = await store.names_ranking_for_player_on_guild(1, guild_id)
    totals = await store.total_games_ranking_for_guild(guild_id)

    assert [(m.mode, m.count) for m in colors] == [(2, 2), (5, 1)]
    assert [(m.mode, m.count) for m in names] == [("Alice", 2), ("Ally", 1)]
    assert [(m.mode, m.count) for m in totals] == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.asyncio
async def test_leaderboards(store, guild_id):
    wins = await store.total_win_ranking_for_guild(guild_id)
    assert [r.user_id for r in wins] == [1, 2, 3]

    best = await store.best_teammate_for_guild_by_role(guild_id, GameRole.CREWMATE, 3)
    assert [(r.user_id, r.teammate_id, r.total, r.win) for r in best] == [(2, 1, 3, 2)]
    assert await store.best_teammate_for_guild_by_role(guild_id, GameRole.CREWMATE, 4) == []

    worst = await store.worst_teammate_by_role(1, guild_id, GameRole.CREWMATE, 1)
    assert [(r.teammate_id, r.loss) for r in worst] == [(2, 1)]

    others = await store.other_players_ranking_for_player_on_guild(3, guild_id)
    assert [r.percent for r in others] == [100.0, 100.0]


@pytest.mark.asyncio
async def test_action_rankings(store, guild_id):
    [exiled] = await store.user_win_by_action_and_role(
        3, guild_id, PlayerAction.EXILED, GameRole.IMPOSTER
    )
    assert (exiled.total_action, exiled.total) == (1, 3)

    firsts = await store.user_frequent_first_target(1, guild_id, PlayerAction.DIED, 5)
    assert [(r.total_death, r.total) for r in firsts] == [(1, 3)]
    assert await store.most_frequent_first_target_for_guild(guild_id, PlayerAction.DIED, 5) == []

    killed = await store.user_most_frequent_killed_by(1, guild_id)
    assert [(r.imposter_id, r.total_death, r.encounter) for r in killed] == [(3, 1, 3)]
    assert len(await store.most_frequent_killed_by_for_guild(guild_id)) == 2


@pytest.mark.asyncio
async def test_delete_guild_cascades(store, guild_id):
    assert await store.delete_all_games_for_guild(guild_id) is True

    assert await store.num_games_played_on_guild(guild_id) == 0
    assert await store.get_game_events(2) == []
    assert await store.num_games_played_by_user(1) == 1


@pytest.mark.asyncio
async def test_delete_user_removes_rankings(store, guild_id):
    assert await store.delete_all_games_for_user("1") is True

    assert await store.num_games_played_by_user(1) == 0
    assert await store.get_game(1) is not None
    assert [m.mode for m in await store.total_games_ranking_for_guild(guild_id)] == [2, 3]


@pytest.mark.asyncio
async def test_running_games_are_not_counted_as_played(store, make_match, guild_id):
    store.add_game(make_match(5, end_time=-1))

    assert await store.num_games_played_on_guild(guild_id) == 3
    assert await store.get_game(5) is not None
