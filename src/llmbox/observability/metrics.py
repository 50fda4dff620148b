"""Prometheus metrics instrumentation for llmbox.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus business metrics.
- ``WEBHOOK_OUTCOMES``: Counter of inbound webhook outcomes, labelled by outcome.
- ``NEWSLETTERS_SENT`` / ``NEWSLETTERS_FAILED``: Per-user newsletter results.
- ``BATCH_DURATION``: Histogram of newsletter batch run durations.

Business metrics are updated where the events happen, never by polling the database.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

WEBHOOK_OUTCOMES: Counter = Counter(
    "llmbox_webhook_outcomes_total",
    "Inbound email webhooks by outcome",
    ["outcome"],
)

NEWSLETTERS_SENT: Counter = Counter(
    "llmbox_newsletters_sent_total",
    "Newsletters generated, persisted and sent",
)

NEWSLETTERS_FAILED: Counter = Counter(
    "llmbox_newsletters_failed_total",
    "Per-user newsletter attempts that failed during a batch run",
)

BATCH_DURATION: Histogram = Histogram(
    "llmbox_batch_duration_seconds",
    "Wall-clock duration of newsletter batch runs",
    buckets=(1, 5, 15, 30, 60, 120, 300, 600, 1800),
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Health, readiness and metrics endpoints are excluded from instrumentation.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
