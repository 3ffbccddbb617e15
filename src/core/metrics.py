"""
Prometheus metrics for the statistics engine.

DRY: Centralize metric definitions and helpers here to avoid scattered
instrumentation across modules. Metrics live in a private registry so that
importing this module never collides with a host application's default one.
"""

from __future__ import annotations

import contextlib

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Global registry
_registry = CollectorRegistry()

# ============================================================================
# Counters
# ============================================================================

crewstats_store_queries_total = Counter(
    "crewstats_store_queries_total",
    "Store queries by operation and outcome",
    labelnames=("op", "outcome"),
    registry=_registry,
)

crewstats_match_reductions_total = Counter(
    "crewstats_match_reductions_total",
    "Match statistics reductions by whether a timeline was produced",
    labelnames=("timeline",),
    registry=_registry,
)

crewstats_telemetry_events_skipped_total = Counter(
    "crewstats_telemetry_events_skipped_total",
    "Raw telemetry events skipped because their payload could not be decoded",
    labelnames=("event_type",),
    registry=_registry,
)

# ============================================================================
# Histograms
# ============================================================================

crewstats_store_query_duration_seconds = Histogram(
    "crewstats_store_query_duration_seconds",
    "Store query duration in seconds by operation",
    labelnames=("op",),
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=_registry,
)


# ============================================================================
# Helper Functions
# ============================================================================


def mark_query_outcome(op: str, outcome: str) -> None:
    """Mark a store query outcome.

    Args:
        op: Store operation name (e.g., 'best_teammate_by_role')
        outcome: 'success' or 'error'
    """
    with contextlib.suppress(Exception):
        crewstats_store_queries_total.labels(op=op, outcome=outcome).inc()


def observe_query_latency(op: str, duration_seconds: float) -> None:
    """Observe store query latency."""
    with contextlib.suppress(Exception):
        crewstats_store_query_duration_seconds.labels(op=op).observe(duration_seconds)


def mark_reduction(has_timeline: bool) -> None:
    with contextlib.suppress(Exception):
        crewstats_match_reductions_total.labels(timeline="yes" if has_timeline else "no").inc()


def mark_skipped_event(event_type: int) -> None:
    with contextlib.suppress(Exception):
        crewstats_telemetry_events_skipped_total.labels(event_type=str(event_type)).inc()


def render_latest() -> tuple[bytes, str]:
    """Render latest metrics for Prometheus scraping.

    Returns:
        Tuple of (payload bytes, content_type string)
    """
    try:
        return (generate_latest(_registry), CONTENT_TYPE_LATEST)
    except Exception:
        return (b"# Error generating metrics\n", "text/plain; charset=utf-8")
