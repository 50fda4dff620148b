"""Sentry error tracking bridged from structlog.

``init_sentry(dsn)`` is a no-op for an empty DSN, so it is safe to call
unconditionally at startup.  ``get_sentry_processor()`` forwards ERROR-level
structlog events (failed generations, failed sends, batch user failures)
to Sentry.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, environment: str = "development") -> bool:
    """Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN.  Empty string disables Sentry.
        environment: Environment tag attached to every event.

    Returns:
        ``True`` when Sentry was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        # Email addresses and bodies stay out of error reports.
        send_default_pii=False,
        integrations=[
            # structlog-sentry reports errors; the stdlib integration would duplicate them.
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Must sit after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
