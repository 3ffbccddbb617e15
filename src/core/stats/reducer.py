"""Single-match reduction: raw telemetry -> MatchStatistics.

Pure domain logic (zero I/O). Callers hand in events already sorted by
``event_time``; no sorting happens here.
"""

import logging
from collections.abc import Sequence

from src.contracts.game import (
    DISCUSS_CODE,
    TASKS_CODE,
    GameResult,
    MatchRecord,
    PlayerAction,
    RawEvent,
    UserOutcomeRecord,
)
from src.contracts.statistics import MatchStatistics, TimelineEntry, TimelineEntryKind
from src.core.metrics import mark_reduction
from src.core.stats.classifier import (
    PhaseStateEvent,
    PlayerActionEvent,
    classify_event,
    classify_outcome,
    winning_faction,
)

logger = logging.getLogger(__name__)

# Shorter streams carry no usable timeline
MIN_TIMELINE_EVENTS = 2


def reduce_match(
    match: MatchRecord | None,
    events: Sequence[RawEvent],
    outcomes: Sequence[UserOutcomeRecord],
) -> MatchStatistics:
    """Fold one match's events and outcome rows into its statistics.

    Args:
        match: The ``games`` row, or None when it could not be loaded
        events: The match's raw events in ascending ``event_time`` order
        outcomes: One ``users_games`` row per participant

    Returns:
        MatchStatistics with winners/losers, counters and the timeline.
        Without a match row only the winner/loser split is filled in, since
        timeline offsets are relative to the match start.
    """
    winners = [o.player_name for o in outcomes if o.player_won]
    losers = [o.player_name for o in outcomes if not o.player_won]

    if match is None:
        mark_reduction(False)
        return MatchStatistics(winner_names=winners, loser_names=losers)

    result = classify_outcome(match.win_type)
    header = {
        "game_start_time": match.start_time,
        "game_end_time": match.end_time,
        "game_duration": match.end_time - match.start_time if match.is_finished else 0,
        "win_type": result,
        "win_faction": winning_faction(result),
        "winner_names": winners,
        "loser_names": losers,
    }

    if len(events) < MIN_TIMELINE_EVENTS:
        mark_reduction(False)
        return MatchStatistics(**header)

    num_meetings = num_deaths = num_voted_off = num_disconnects = 0
    timeline: list[TimelineEntry] = []
    exiled_names: set[str] = set()

    def append(kind: TimelineEntryKind, raw: RawEvent, data: str = "") -> None:
        timeline.append(
            TimelineEntry(kind=kind, offset_seconds=raw.event_time - match.start_time, data=data)
        )

    for raw in events:
        event = classify_event(raw)

        if isinstance(event, PhaseStateEvent):
            if event.code == DISCUSS_CODE:
                num_meetings += 1
                append(TimelineEntryKind.DISCUSS, raw)
            elif event.code == TASKS_CODE:
                append(TimelineEntryKind.TASKS, raw)

        elif isinstance(event, PlayerActionEvent):
            if event.action == PlayerAction.DIED:
                num_deaths += 1
                # An exiled player is also reported dead afterwards
                if event.name not in exiled_names:
                    append(TimelineEntryKind.PLAYER_DEATH, raw, event.payload)
            elif event.action == PlayerAction.EXILED:
                num_voted_off += 1
                exiled_names.add(event.name)
                append(TimelineEntryKind.PLAYER_EXILED, raw, event.payload)
            elif event.action == PlayerAction.DISCONNECTED:
                num_disconnects += 1
                append(TimelineEntryKind.PLAYER_DISCONNECT, raw, event.payload)

    if result is GameResult.UNKNOWN:
        logger.debug("Match %s has unknown win type %s", match.game_id, match.win_type)

    mark_reduction(True)
    return MatchStatistics(
        **header,
        num_meetings=num_meetings,
        num_deaths=num_deaths,
        num_voted_off=num_voted_off,
        num_disconnects=num_disconnects,
        events=timeline,
    )
