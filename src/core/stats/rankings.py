"""Ranking contracts over the per-user-per-match fact table.

Pure domain functions (zero I/O) that define the filter and tie-break rules
of every leaderboard. ``src.adapters.database`` pushes the same rules down
into SQL; ``src.adapters.memory_store`` runs these functions directly.

Ordering rules shared by every ranking:
- primary key is the rate (or count) descending
- ties fall back to the raw count, then the sample size, then the ids
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pydantic import ValidationError

from src.contracts.common import GameRole
from src.contracts.game import CaptureEventType, PlayerAction, PlayerPayload, RawEvent, UserOutcomeRecord
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

# Guild-wide first-target rankings only list users with more crewmate games than this
FIRST_TARGET_MIN_GAMES = 3

MODE_COLUMNS = frozenset({"player_color", "player_name", "user_id"})


def _rate(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def filter_rows(
    rows: Iterable[UserOutcomeRecord],
    *,
    user_id: int | None = None,
    guild_id: int | None = None,
    role: int | None = None,
    won: bool | None = None,
) -> list[UserOutcomeRecord]:
    """Select fact rows matching every given criterion."""
    return [
        r
        for r in rows
        if (user_id is None or r.user_id == user_id)
        and (guild_id is None or r.guild_id == guild_id)
        and (role is None or r.player_role == role)
        and (won is None or r.player_won == won)
    ]


def _by_game(rows: Iterable[UserOutcomeRecord]) -> dict[int, list[UserOutcomeRecord]]:
    games: dict[int, list[UserOutcomeRecord]] = defaultdict(list)
    for r in rows:
        games[r.game_id].append(r)
    return games


def _event_action(event: RawEvent) -> int | None:
    if event.event_type != CaptureEventType.PLAYER:
        return None
    try:
        return PlayerPayload.model_validate_json(event.payload).action
    except ValidationError:
        return None


# ============================================================================
# Mode rankings
# ============================================================================


def mode_ranking(rows: Iterable[UserOutcomeRecord], column: str) -> list[ModeCount]:
    """Occurrences of each value of ``column``, most frequent first."""
    if column not in MODE_COLUMNS:
        raise ValueError(f"Unsupported mode column: {column}")
    counts = Counter(getattr(r, column) for r in rows)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [ModeCount(count=count, mode=mode) for mode, count in ordered]


def other_players_ranking(
    rows: Sequence[UserOutcomeRecord], user_id: int, guild_id: int
) -> list[OtherPlayerRanking]:
    """Share of the user's guild matches played alongside each other player."""
    own_games = {r.game_id for r in filter_rows(rows, user_id=user_id, guild_id=guild_id)}
    if not own_games:
        return []
    shared = Counter(r.user_id for r in rows if r.game_id in own_games and r.user_id != user_id)
    ranked = [
        OtherPlayerRanking(user_id=other, count=count, percent=_rate(count, len(own_games)))
        for other, count in shared.items()
    ]
    ranked.sort(key=lambda r: (-r.percent, -r.count, r.user_id))
    return ranked


# ============================================================================
# Win-rate leaderboards
# ============================================================================


def win_ranking(
    rows: Sequence[UserOutcomeRecord], guild_id: int, role: int | None = None
) -> list[PlayerRanking]:
    """Per-user win rate in a guild, best first.

    Equal rates keep first-appearance order; no further tie-break is applied.
    """
    wins: dict[int, int] = {}
    totals: dict[int, int] = {}
    for r in filter_rows(rows, guild_id=guild_id, role=role):
        totals[r.user_id] = totals.get(r.user_id, 0) + 1
        wins[r.user_id] = wins.get(r.user_id, 0) + int(r.player_won)
    ranked = [
        PlayerRanking(user_id=uid, win=wins[uid], total=total, win_rate=_rate(wins[uid], total))
        for uid, total in totals.items()
    ]
    ranked.sort(key=lambda r: -r.win_rate)
    return ranked


# ============================================================================
# Paired relationships
# ============================================================================


@dataclass(slots=True)
class _PairTally:
    user_id: int
    teammate_id: int
    total: int = 0
    win: int = 0

    @property
    def loss(self) -> int:
        return self.total - self.win


def _tally_pairs(
    rows: Sequence[UserOutcomeRecord], guild_id: int, role: int, user_id: int | None
) -> list[_PairTally]:
    """Count shared matches (and the first player's wins) for every same-role pair.

    With ``user_id`` the pairs are (user, teammate). Without it every unordered
    pair is counted once under its canonical form ``user_id > teammate_id``.
    """
    tallies: dict[tuple[int, int], _PairTally] = {}
    for players in _by_game(filter_rows(rows, guild_id=guild_id, role=role)).values():
        for a in players:
            if user_id is not None and a.user_id != user_id:
                continue
            for b in players:
                if a.user_id == b.user_id:
                    continue
                if user_id is None and a.user_id < b.user_id:
                    continue
                key = (a.user_id, b.user_id)
                tally = tallies.get(key)
                if tally is None:
                    tally = tallies[key] = _PairTally(user_id=a.user_id, teammate_id=b.user_id)
                tally.total += 1
                tally.win += int(a.player_won)
    return list(tallies.values())


def best_teammates(
    rows: Sequence[UserOutcomeRecord],
    guild_id: int,
    role: int,
    leaderboard_min: int,
    *,
    user_id: int | None = None,
) -> list[TeammateRanking]:
    """Pairs with the highest joint win rate, ignoring pairs below ``leaderboard_min`` games."""
    ranked = [
        TeammateRanking(
            user_id=t.user_id,
            teammate_id=t.teammate_id,
            total=t.total,
            win=t.win,
            win_rate=_rate(t.win, t.total),
        )
        for t in _tally_pairs(rows, guild_id, role, user_id)
        if t.total >= leaderboard_min
    ]
    ranked.sort(key=lambda r: (-r.win_rate, -r.win, -r.total, r.user_id, r.teammate_id))
    return ranked


def worst_teammates(
    rows: Sequence[UserOutcomeRecord],
    guild_id: int,
    role: int,
    leaderboard_min: int,
    *,
    user_id: int | None = None,
) -> list[WorstTeammateRanking]:
    """Pairs with the highest joint loss rate, ignoring pairs below ``leaderboard_min`` games."""
    ranked = [
        WorstTeammateRanking(
            user_id=t.user_id,
            teammate_id=t.teammate_id,
            total=t.total,
            loss=t.loss,
            loss_rate=_rate(t.loss, t.total),
        )
        for t in _tally_pairs(rows, guild_id, role, user_id)
        if t.total >= leaderboard_min
    ]
    ranked.sort(key=lambda r: (-r.loss_rate, -r.loss, -r.total, r.user_id, r.teammate_id))
    return ranked


# ============================================================================
# Action and first-incident rankings
# ============================================================================


def user_action_ranking(
    rows: Sequence[UserOutcomeRecord],
    events: Sequence[RawEvent],
    user_id: int,
    guild_id: int,
    action: int,
    role: int,
) -> list[UserActionRanking]:
    """How many ``action`` events the user produced in matches played as ``role``."""
    own = filter_rows(rows, user_id=user_id, guild_id=guild_id, role=role)
    if not own:
        return []
    games = {r.game_id for r in own}
    wins = sum(1 for r in own if r.player_won)
    total_action = sum(
        1 for e in events if e.game_id in games and e.user_id == user_id and _event_action(e) == action
    )
    return [
        UserActionRanking(
            user_id=user_id,
            total_action=total_action,
            total=len(own),
            win_rate=_rate(wins, len(own)),
        )
    ]


def first_action_targets(events: Iterable[RawEvent], action: int) -> dict[int, int]:
    """Map each match to the user behind its earliest ``action`` event.

    Events are compared by ``event_time`` then ``event_id``; events without a
    linked user still claim the first slot of their match.
    """
    firsts: dict[int, RawEvent] = {}
    for e in events:
        if _event_action(e) != action:
            continue
        current = firsts.get(e.game_id)
        if current is None or (e.event_time, e.event_id) < (current.event_time, current.event_id):
            firsts[e.game_id] = e
    return {game_id: e.user_id for game_id, e in firsts.items() if e.user_id is not None}


def first_target_ranking(
    rows: Sequence[UserOutcomeRecord],
    events: Sequence[RawEvent],
    guild_id: int,
    action: int,
    leaderboard_size: int,
    *,
    user_id: int | None = None,
    min_games: int = 0,
) -> list[FirstTargetRanking]:
    """Users most often hit first by ``action``, normalised by their crewmate matches.

    Only users with more than ``min_games`` crewmate matches in the guild are
    ranked; at most ``leaderboard_size`` rows are returned.
    """
    guild_rows = filter_rows(rows, guild_id=guild_id)
    guild_games = {r.game_id for r in guild_rows}
    crew_totals = Counter(r.user_id for r in guild_rows if r.player_role == GameRole.CREWMATE)

    hits: Counter[int] = Counter()
    participants = {(r.game_id, r.user_id) for r in guild_rows}
    for game_id, target in first_action_targets(
        (e for e in events if e.game_id in guild_games), action
    ).items():
        if (game_id, target) in participants and (user_id is None or target == user_id):
            hits[target] += 1

    ranked = [
        FirstTargetRanking(
            user_id=uid,
            total_death=count,
            total=crew_totals[uid],
            death_rate=_rate(count, crew_totals[uid]),
        )
        for uid, count in hits.items()
        if crew_totals[uid] > min_games
    ]
    ranked.sort(key=lambda r: (-r.death_rate, -r.total_death, r.user_id))
    return ranked[: max(leaderboard_size, 0)]


def killed_by_ranking(
    rows: Sequence[UserOutcomeRecord],
    events: Sequence[RawEvent],
    guild_id: int,
    *,
    user_id: int | None = None,
) -> list[KilledByRanking]:
    """Per (crewmate, imposter) pair: shared matches and matches the crewmate died in."""
    died = {
        (e.game_id, e.user_id)
        for e in events
        if e.user_id is not None and _event_action(e) == PlayerAction.DIED
    }
    tallies: dict[tuple[int, int], list[int]] = {}
    for players in _by_game(filter_rows(rows, guild_id=guild_id)).values():
        imposters = [p for p in players if p.player_role == GameRole.IMPOSTER]
        for crew in players:
            if crew.player_role != GameRole.CREWMATE:
                continue
            if user_id is not None and crew.user_id != user_id:
                continue
            crew_died = (crew.game_id, crew.user_id) in died
            for imp in imposters:
                tally = tallies.setdefault((crew.user_id, imp.user_id), [0, 0])
                tally[0] += int(crew_died)
                tally[1] += 1

    ranked = [
        KilledByRanking(
            user_id=crew_id,
            imposter_id=imp_id,
            total_death=deaths,
            encounter=encounter,
            death_rate=_rate(deaths, encounter),
        )
        for (crew_id, imp_id), (deaths, encounter) in tallies.items()
    ]
    ranked.sort(
        key=lambda r: (-r.death_rate, -r.total_death, -r.encounter, r.user_id, r.imposter_id)
    )
    return ranked
