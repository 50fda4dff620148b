"""Tests for metrics exposure, request-id middleware and Sentry setup."""

from __future__ import annotations

from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from llmbox.observability.metrics import WEBHOOK_OUTCOMES, setup_metrics
from llmbox.observability.middleware import RequestIdMiddleware, new_request_id
from llmbox.observability.sentry import get_sentry_processor, init_sentry


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"pong": "ok"}

    setup_metrics(app)
    return app


class TestMetrics:
    def test_metrics_endpoint_exposes_business_counters(self) -> None:
        WEBHOOK_OUTCOMES.labels(outcome="replied").inc()
        client = TestClient(_make_app())

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "llmbox_webhook_outcomes_total" in response.text
        assert "llmbox_newsletters_sent_total" in response.text
        assert "llmbox_batch_duration_seconds" in response.text

    def test_http_requests_are_instrumented(self) -> None:
        client = TestClient(_make_app())
        client.get("/ping")

        response = client.get("/metrics")

        assert "http_request" in response.text


class TestRequestIdMiddleware:
    def test_generates_request_id(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/ping")

        assert response.headers["X-Request-ID"]

    def test_echoes_client_request_id(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/ping", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_blank_client_id_is_replaced(self) -> None:
        generated = new_request_id("   ")
        assert generated.strip()
        assert generated != "   "

    def test_client_id_is_trimmed(self) -> None:
        assert new_request_id(" req-9 ") == "req-9"


class TestSentry:
    def test_empty_dsn_is_noop(self) -> None:
        with patch("llmbox.observability.sentry.sentry_sdk.init") as init:
            assert init_sentry("") is False
        init.assert_not_called()

    def test_dsn_initializes_sdk(self) -> None:
        with patch("llmbox.observability.sentry.sentry_sdk.init") as init:
            assert init_sentry("https://key@sentry.example/1", environment="production") is True

        kwargs = init.call_args.kwargs
        assert kwargs["dsn"] == "https://key@sentry.example/1"
        assert kwargs["environment"] == "production"
        assert kwargs["send_default_pii"] is False

    def test_processor_is_callable(self) -> None:
        assert callable(get_sentry_processor())
