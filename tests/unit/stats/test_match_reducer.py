"""Tests for single-match reduction."""

import pytest

from src.contracts.common import GameRole, WinFaction
from src.contracts.game import DISCUSS_CODE, TASKS_CODE, GameResult, PlayerAction
from src.contracts.statistics import TimelineEntryKind
from src.core.stats.reducer import reduce_match


@pytest.fixture
def alice_bob(outcome):
    return [
        outcome(1, 1, role=GameRole.IMPOSTER, won=False, name="Alice"),
        outcome(2, 1, role=GameRole.CREWMATE, won=True, name="Bob"),
    ]


def test_exiled_player_gets_no_death_entry(make_match, state_event, player_event, alice_bob):
    match = make_match(start_time=1000, end_time=1100, win_type=GameResult.HUMANS_BY_VOTE)
    events = [
        state_event(1010, DISCUSS_CODE),
        player_event(1020, PlayerAction.EXILED, "Alice"),
        player_event(1030, PlayerAction.DIED, "Alice"),
    ]

    stats = reduce_match(match, events, alice_bob)

    assert stats.winner_names == ["Bob"]
    assert stats.loser_names == ["Alice"]
    assert stats.num_meetings == 1
    assert stats.num_voted_off == 1
    assert stats.num_deaths == 1
    assert [(e.kind, e.offset_seconds) for e in stats.events] == [
        (TimelineEntryKind.DISCUSS, 10),
        (TimelineEntryKind.PLAYER_EXILED, 20),
    ]
    assert stats.events[1].player_name == "Alice"
    assert stats.game_duration == 100
    assert stats.win_faction is WinFaction.CREWMATE


def test_death_before_exile_keeps_both_entries(make_match, state_event, player_event, alice_bob):
    match = make_match(start_time=1000, end_time=1100)
    events = [
        state_event(1010, DISCUSS_CODE),
        player_event(1020, PlayerAction.DIED, "Alice"),
        player_event(1030, PlayerAction.EXILED, "Alice"),
    ]

    stats = reduce_match(match, events, alice_bob)

    assert [(e.kind, e.offset_seconds) for e in stats.events] == [
        (TimelineEntryKind.DISCUSS, 10),
        (TimelineEntryKind.PLAYER_DEATH, 20),
        (TimelineEntryKind.PLAYER_EXILED, 30),
    ]
    assert stats.num_deaths == 1
    assert stats.num_voted_off == 1


def test_exile_only_suppresses_that_players_death(make_match, player_event):
    events = [
        player_event(1020, PlayerAction.EXILED, "Alice"),
        player_event(1030, PlayerAction.DIED, "Alice"),
        player_event(1040, PlayerAction.DIED, "Carol"),
    ]

    stats = reduce_match(make_match(), events, [])

    kinds = [(e.kind, e.player_name) for e in stats.events]
    assert kinds == [
        (TimelineEntryKind.PLAYER_EXILED, "Alice"),
        (TimelineEntryKind.PLAYER_DEATH, "Carol"),
    ]
    assert stats.num_deaths == 2
    assert stats.num_killed == 1


def test_eliminated_names_do_not_leak_between_reductions(make_match, player_event):
    first = [
        player_event(1020, PlayerAction.EXILED, "Alice"),
        player_event(1030, PlayerAction.DIED, "Alice"),
    ]
    second = [
        player_event(1020, PlayerAction.DIED, "Alice"),
        player_event(1030, PlayerAction.DIED, "Bob"),
    ]

    reduce_match(make_match(), first, [])
    stats = reduce_match(make_match(), second, [])

    assert [e.kind for e in stats.events] == [TimelineEntryKind.PLAYER_DEATH] * 2


@pytest.mark.parametrize("count", [0, 1])
def test_short_event_stream_has_no_timeline(make_match, state_event, alice_bob, count):
    events = [state_event(1010, DISCUSS_CODE)][:count]

    stats = reduce_match(make_match(start_time=1000, end_time=1300), events, alice_bob)

    assert stats.events == []
    assert stats.num_meetings == 0
    assert stats.game_duration == 300
    assert stats.winner_names == ["Bob"]


def test_phase_and_disconnect_entries(make_match, state_event, player_event):
    events = [
        state_event(1005, TASKS_CODE),
        state_event(1060, DISCUSS_CODE),
        state_event(1090, TASKS_CODE),
        player_event(1100, PlayerAction.DISCONNECTED, "Dave"),
        state_event(1150, DISCUSS_CODE),
        player_event(1160, PlayerAction.CHANGE_COLOR, "Erin"),
        state_event(1170, "4"),
    ]

    stats = reduce_match(make_match(start_time=1000), events, [])

    assert [(e.kind, e.offset_seconds) for e in stats.events] == [
        (TimelineEntryKind.TASKS, 5),
        (TimelineEntryKind.DISCUSS, 60),
        (TimelineEntryKind.TASKS, 90),
        (TimelineEntryKind.PLAYER_DISCONNECT, 100),
        (TimelineEntryKind.DISCUSS, 150),
    ]
    assert stats.num_meetings == 2
    assert stats.num_disconnects == 1
    assert stats.events[0].data == ""


def test_malformed_payload_is_skipped(make_match, state_event, player_event):
    broken = player_event(1020, PlayerAction.DIED, "Alice").model_copy(update={"payload": "{oops"})
    events = [state_event(1010, DISCUSS_CODE), broken]

    stats = reduce_match(make_match(), events, [])

    assert stats.num_deaths == 0
    assert [e.kind for e in stats.events] == [TimelineEntryKind.DISCUSS]


def test_winners_and_losers_partition_outcomes(make_match, outcome):
    rows = [
        outcome(1, 1, won=True, name="A"),
        outcome(2, 1, won=False, name="B"),
        outcome(3, 1, won=True, name="C"),
        outcome(4, 1, role=GameRole.IMPOSTER, won=False, name="D"),
    ]

    stats = reduce_match(make_match(), [], rows)

    assert stats.winner_names == ["A", "C"]
    assert stats.loser_names == ["B", "D"]
    assert stats.num_players == len(rows)


def test_unknown_win_type_uses_default_faction(make_match):
    stats = reduce_match(make_match(win_type=99), [], [])

    assert stats.win_type is GameResult.UNKNOWN
    assert stats.win_faction is WinFaction.CREWMATE_DEFAULT


def test_unfinished_match_has_zero_duration(make_match):
    stats = reduce_match(make_match(end_time=-1), [], [])

    assert stats.game_duration == 0
    assert stats.game_end_time == -1


def test_missing_match_reports_outcomes_only(state_event, player_event, alice_bob):
    events = [state_event(1010, DISCUSS_CODE), player_event(1020, PlayerAction.DIED, "Bob")]

    stats = reduce_match(None, events, alice_bob)

    assert stats.winner_names == ["Bob"]
    assert stats.loser_names == ["Alice"]
    assert stats.events == []
    assert stats.num_deaths == 0
    assert stats.win_faction is WinFaction.CREWMATE_DEFAULT
    assert stats.started_at is None


def test_inputs_are_not_reordered(make_match, player_event):
    events = [
        player_event(1030, PlayerAction.DIED, "Alice"),
        player_event(1020, PlayerAction.EXILED, "Alice"),
    ]
    before = list(events)

    stats = reduce_match(make_match(), events, [])

    assert events == before
    assert [e.offset_seconds for e in stats.events] == [30, 20]
