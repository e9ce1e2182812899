"""
Sentry integration for error tracking.

Provides:
- Exception capture for isolated pipeline failures (detectors, callbacks)
- ERROR log forwarding via LoggingIntegration

Security:
- PII is disabled
- Query strings carrying tokens are redacted
"""

import logging
import re
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from matchpulse.config import Settings

logger = logging.getLogger(__name__)

# Module-level flag to track initialization
_sentry_initialized = False


def scrub_sensitive_data(event: dict, hint: dict) -> Optional[dict]:
    """Redact token-like query parameters before sending."""
    try:
        request = event.get("request") or {}
        query_string = request.get("query_string")
        if isinstance(query_string, str) and query_string:
            request["query_string"] = re.sub(
                r"(?i)(token|api_key|key|secret|password)=([^&]*)",
                r"\1=[REDACTED]",
                query_string,
            )
            event["request"] = request
    except Exception as e:
        # Never fail scrubbing - just log and continue
        logger.warning(f"Sentry scrubbing error (continuing): {e}")

    return event


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry SDK if SENTRY_DSN is configured.

    Returns True if Sentry was initialized, False otherwise.
    """
    global _sentry_initialized

    if _sentry_initialized:
        logger.debug("Sentry already initialized, skipping")
        return True

    if not settings.SENTRY_DSN:
        logger.info("Sentry not configured (SENTRY_DSN not set)")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        integrations=[
            LoggingIntegration(
                level=logging.INFO,         # Breadcrumbs
                event_level=logging.ERROR,  # Create events for ERROR
            ),
        ],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
        before_send=scrub_sensitive_data,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )

    _sentry_initialized = True
    logger.info(f"Sentry initialized: env={settings.SENTRY_ENVIRONMENT}")
    return True


def is_sentry_enabled() -> bool:
    """Check if Sentry is initialized and active."""
    return _sentry_initialized


def capture_exception(exc: BaseException, **tags) -> None:
    """Report an isolated failure. No-op when Sentry is off."""
    if not _sentry_initialized:
        return
    try:
        with sentry_sdk.push_scope() as scope:
            for key, value in tags.items():
                if value is not None:
                    scope.set_tag(key, str(value))
            sentry_sdk.capture_exception(exc)
    except Exception as e:
        logger.debug(f"Sentry capture failed: {e}")
