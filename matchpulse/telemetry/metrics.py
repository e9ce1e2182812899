"""
Prometheus metrics for the live refresh pipeline.

Design principles:
- Low cardinality (controlled labels)
- Best-effort (never block main flow)

=============================================================================
CARDINALITY CONTROL
=============================================================================

ALLOWED LABELS (bounded sets):
- outcome:     "ok", "error", "rate_limited", "skipped"
- mode:        "live", "active", "idle", "cooldown"
- event_type:  "GOAL", "MATCH_START", "MATCH_END", "RED_CARD", "SUBSTITUTION"
- detector:    registered detector keys ("match_events", "match_status")
- source:      "event_bus", "app_state", "poller"
- state:       "idle", "loading", "live", "error", "offline"

FORBIDDEN AS LABELS: match ids, team names, error messages.
Use logs for per-match debugging.
=============================================================================
"""

import logging

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

logger = logging.getLogger(__name__)

# =============================================================================
# POLLER METRICS
# =============================================================================

live_poll_total = Counter(
    "live_poll_total",
    "Poll cycles by outcome",
    ["outcome"],
)

live_poll_latency_ms = Histogram(
    "live_poll_latency_ms",
    "Snapshot fetch latency in milliseconds",
    [],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000],
)

live_poll_interval_seconds = Gauge(
    "live_poll_interval_seconds",
    "Interval chosen for the next poll cycle",
    ["mode"],
)

live_poll_consecutive_errors = Gauge(
    "live_poll_consecutive_errors",
    "Current consecutive poll failure count",
    [],
)

# =============================================================================
# DETECTION / EVENT METRICS
# =============================================================================

live_events_emitted_total = Counter(
    "live_events_emitted_total",
    "Events emitted on the event bus",
    ["event_type"],
)

live_detector_errors_total = Counter(
    "live_detector_errors_total",
    "Exceptions raised inside change detectors",
    ["detector"],
)

live_callback_errors_total = Counter(
    "live_callback_errors_total",
    "Exceptions raised inside subscriber callbacks",
    ["source"],
)

live_match_end_notifications_total = Counter(
    "live_match_end_notifications_total",
    "Match-end notifications by status",
    ["status"],  # sent, failed, deduped
)

# =============================================================================
# APPLICATION STATE
# =============================================================================

app_state_transitions_total = Counter(
    "app_state_transitions_total",
    "Application state transitions by target state",
    ["state"],
)


# =============================================================================
# HELPERS
# =============================================================================


def record_poll(outcome: str, latency_ms: float = None) -> None:
    """Record a poll cycle outcome (and fetch latency when measured)."""
    try:
        live_poll_total.labels(outcome=outcome).inc()
        if latency_ms is not None:
            live_poll_latency_ms.observe(latency_ms)
    except Exception as e:
        logger.debug(f"Metrics error (poll): {e}")


def record_schedule(mode: str, interval_seconds: float, error_count: int) -> None:
    """Record the scheduling decision for the next cycle."""
    try:
        live_poll_interval_seconds.labels(mode=mode).set(interval_seconds)
        live_poll_consecutive_errors.set(error_count)
    except Exception as e:
        logger.debug(f"Metrics error (schedule): {e}")


def record_event(event_type: str) -> None:
    try:
        live_events_emitted_total.labels(event_type=event_type).inc()
    except Exception as e:
        logger.debug(f"Metrics error (event): {e}")


def record_detector_error(detector: str) -> None:
    try:
        live_detector_errors_total.labels(detector=detector).inc()
    except Exception as e:
        logger.debug(f"Metrics error (detector): {e}")


def record_callback_error(source: str) -> None:
    try:
        live_callback_errors_total.labels(source=source).inc()
    except Exception as e:
        logger.debug(f"Metrics error (callback): {e}")


def record_match_end_notification(status: str) -> None:
    try:
        live_match_end_notifications_total.labels(status=status).inc()
    except Exception as e:
        logger.debug(f"Metrics error (notification): {e}")


def record_state_transition(state: str) -> None:
    try:
        app_state_transitions_total.labels(state=state).inc()
    except Exception as e:
        logger.debug(f"Metrics error (state): {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
