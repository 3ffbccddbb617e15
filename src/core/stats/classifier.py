"""Outcome and telemetry classification - pure functions with zero I/O.

Raw rows are decoded here exactly once; everything downstream works with the
typed values returned by these functions.
"""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from src.contracts.common import GameRole, WinFaction
from src.contracts.game import (
    CaptureEventType,
    GameResult,
    PlayerPayload,
    RawEvent,
)
from src.core.metrics import mark_skipped_event

logger = logging.getLogger(__name__)

_CREWMATE_RESULTS = frozenset(
    {GameResult.HUMANS_BY_TASK, GameResult.HUMANS_BY_VOTE, GameResult.HUMANS_DISCONNECT}
)
_IMPOSTER_RESULTS = frozenset(
    {
        GameResult.IMPOSTOR_DISCONNECT,
        GameResult.IMPOSTOR_BY_SABOTAGE,
        GameResult.IMPOSTOR_BY_VOTE,
        GameResult.IMPOSTOR_BY_KILL,
    }
)


def classify_outcome(code: int) -> GameResult:
    """Map a stored win-condition code to its typed result.

    Anything outside the known codes, including the explicit UNKNOWN code,
    is ``GameResult.UNKNOWN``.
    """
    try:
        return GameResult(code)
    except ValueError:
        return GameResult.UNKNOWN


def winning_faction(result: GameResult) -> WinFaction:
    if result in _IMPOSTER_RESULTS:
        return WinFaction.IMPOSTER
    if result in _CREWMATE_RESULTS:
        return WinFaction.CREWMATE
    return WinFaction.CREWMATE_DEFAULT


def result_codes_for_role(role: GameRole) -> list[int]:
    """Win-condition codes that credit ``role`` with a genuine win, ascending."""
    results = _IMPOSTER_RESULTS if role == GameRole.IMPOSTER else _CREWMATE_RESULTS
    return sorted(int(r) for r in results)


@dataclass(frozen=True, slots=True)
class PhaseStateEvent:
    """A coarse phase transition; ``code`` is the raw discrete payload."""

    code: str


@dataclass(frozen=True, slots=True)
class PlayerActionEvent:
    """A decoded player action; ``payload`` keeps the original JSON text."""

    action: int
    name: str
    payload: str


ClassifiedEvent = PhaseStateEvent | PlayerActionEvent


def parse_player_payload(payload: str) -> PlayerPayload | None:
    """Decode a player-action JSON record, or ``None`` when it is malformed."""
    try:
        return PlayerPayload.model_validate_json(payload)
    except ValidationError as e:
        logger.warning("Skipping unparsable player payload %r: %s", payload[:200], e.errors()[:1])
        return None


def classify_event(raw: RawEvent) -> ClassifiedEvent | None:
    """Decode one raw telemetry row into a tagged event.

    Returns ``None`` for event kinds the statistics do not use and for
    player-action rows whose payload cannot be decoded.
    """
    if raw.event_type == CaptureEventType.STATE:
        return PhaseStateEvent(code=raw.payload)

    if raw.event_type == CaptureEventType.PLAYER:
        player = parse_player_payload(raw.payload)
        if player is None:
            mark_skipped_event(raw.event_type)
            return None
        return PlayerActionEvent(action=player.action, name=player.name, payload=raw.payload)

    return None
