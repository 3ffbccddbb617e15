"""Tests for the statistics Prometheus metrics."""

from src.core import metrics


def _sample(name: str, labels: dict[str, str]) -> float:
    value = metrics._registry.get_sample_value(name, labels)
    return value or 0.0


def test_query_outcomes_are_counted() -> None:
    labels = {"op": "unit_test_op", "outcome": "error"}
    before = _sample("crewstats_store_queries_total", labels)

    metrics.mark_query_outcome("unit_test_op", "error")

    assert _sample("crewstats_store_queries_total", labels) == before + 1


def test_reductions_and_skips_are_counted() -> None:
    before = _sample("crewstats_match_reductions_total", {"timeline": "yes"})
    skipped = _sample("crewstats_telemetry_events_skipped_total", {"event_type": "3"})

    metrics.mark_reduction(True)
    metrics.mark_skipped_event(3)

    assert _sample("crewstats_match_reductions_total", {"timeline": "yes"}) == before + 1
    assert _sample("crewstats_telemetry_events_skipped_total", {"event_type": "3"}) == skipped + 1


def test_render_latest() -> None:
    metrics.observe_query_latency("unit_test_op", 0.02)

    payload, content_type = metrics.render_latest()

    assert b"crewstats_store_query_duration_seconds" in payload
    assert content_type.startswith("text/plain")
