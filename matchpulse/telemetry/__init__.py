"""
Pipeline telemetry: Prometheus metrics and Sentry error tracking.

Design: best-effort; nothing here may raise into the live pipeline.
"""

from matchpulse.telemetry.metrics import (
    record_poll,
    record_schedule,
    record_event,
    record_detector_error,
    record_callback_error,
    record_match_end_notification,
    record_state_transition,
    get_metrics_text,
)
from matchpulse.telemetry.sentry import (
    capture_exception,
    init_sentry,
    is_sentry_enabled,
)

__all__ = [
    "record_poll",
    "record_schedule",
    "record_event",
    "record_detector_error",
    "record_callback_error",
    "record_match_end_notification",
    "record_state_transition",
    "get_metrics_text",
    "capture_exception",
    "init_sentry",
    "is_sentry_enabled",
]
