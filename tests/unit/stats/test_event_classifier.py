"""Tests for decoding raw telemetry rows into tagged events."""

import logging

import pytest

from src.contracts.game import CaptureEventType, PlayerAction, RawEvent
from src.core.stats.classifier import (
    PhaseStateEvent,
    PlayerActionEvent,
    classify_event,
    parse_player_payload,
)


def _raw(event_type: int, payload: str) -> RawEvent:
    return RawEvent(event_id=1, game_id=1, event_time=1010, event_type=event_type, payload=payload)


def test_state_event_keeps_discrete_code() -> None:
    event = classify_event(_raw(CaptureEventType.STATE, "2"))

    assert event == PhaseStateEvent(code="2")


def test_player_event_is_decoded_once(player_event) -> None:
    raw = player_event(1020, PlayerAction.EXILED, "Alice")

    event = classify_event(raw)

    assert isinstance(event, PlayerActionEvent)
    assert event.action == PlayerAction.EXILED
    assert event.name == "Alice"
    assert event.payload == raw.payload


def test_missing_keys_take_zero_values() -> None:
    event = classify_event(_raw(CaptureEventType.PLAYER, "{}"))

    assert event == PlayerActionEvent(action=PlayerAction.JOINED, name="", payload="{}")


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[1, 2]",
        '{"Action": "6", "Name": "Alice"}',
        '{"Action": 6, "Name": 7}',
    ],
)
def test_unparsable_player_payload_is_skipped(payload: str, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="src.core.stats.classifier"):
        assert classify_event(_raw(CaptureEventType.PLAYER, payload)) is None

    assert any("unparsable" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "event_type", [CaptureEventType.CONNECTION, CaptureEventType.LOBBY, CaptureEventType.GAME_OVER, 9]
)
def test_other_capture_types_are_ignored(event_type: int) -> None:
    assert classify_event(_raw(event_type, '{"Action": 2}')) is None


def test_extra_payload_keys_are_ignored() -> None:
    parsed = parse_player_payload('{"Action": 2, "Name": "Bob", "Unexpected": true}')

    assert parsed is not None
    assert parsed.action == PlayerAction.DIED
    assert parsed.name == "Bob"
