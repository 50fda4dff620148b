"""Tests for application entry point: structlog config, service initialization, app creation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from llmbox.app import close_services, configure_logging, create_app, initialize_services
from llmbox.assistant import AssistantResponder
from llmbox.config import Settings
from llmbox.personifeed.batch import BatchDispatcher
from llmbox.personifeed.reply import FeedbackProcessor
from llmbox.store.sqlite import SQLitePersonalizationStore


def _reset_structlog() -> None:
    """Reset structlog so cached loggers don't leak between tests."""
    structlog.reset_defaults()


def _base_settings(tmp_path: Path, **overrides) -> Settings:
    """Settings with the database under tmp_path and no API keys."""
    defaults = {
        "database_path": tmp_path / "db" / "llmbox.db",
        "service_email_address": "assistant@llmbox.app",
        "anthropic_api_key": "",
        "sendgrid_api_key": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)  # type: ignore[call-arg]


class TestConfigureLogging:
    def test_development_mode_uses_console_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=False)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_production_mode_uses_json_renderer(self) -> None:
        _reset_structlog()
        configure_logging(production=True)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_sentry_processor_inserted_when_enabled(self) -> None:
        from structlog_sentry import SentryProcessor

        _reset_structlog()
        configure_logging(production=True, sentry_enabled=True)
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, SentryProcessor) for p in processors)
        _reset_structlog()

    def test_binds_service_name(self) -> None:
        _reset_structlog()
        configure_logging()
        assert structlog.contextvars.get_contextvars()["service"] == "llmbox"


class TestInitializeServices:
    def test_without_api_keys(self, tmp_path: Path) -> None:
        services = initialize_services(_base_settings(tmp_path))
        try:
            assert isinstance(services["store"], SQLitePersonalizationStore)
            assert isinstance(services["feedback_processor"], FeedbackProcessor)
            assert services["generator"] is None
            assert services["sender"] is None
            assert services["responder"] is None
            assert services["dispatcher"] is None
            assert (tmp_path / "db" / "llmbox.db").exists()
        finally:
            close_services(services)

    def test_with_api_keys(self, tmp_path: Path) -> None:
        settings = _base_settings(
            tmp_path,
            anthropic_api_key="sk-ant-test",
            sendgrid_api_key="SG.test",
            batch_concurrency=3,
        )
        with patch("llmbox.app.get_anthropic_client", return_value=MagicMock()) as factory:
            services = initialize_services(settings)
        try:
            factory.assert_called_once_with("sk-ant-test")
            assert isinstance(services["responder"], AssistantResponder)
            assert isinstance(services["dispatcher"], BatchDispatcher)
        finally:
            close_services(services)

    def test_router_uses_settings(self, tmp_path: Path) -> None:
        services = initialize_services(_base_settings(tmp_path))
        try:
            encoded = services["router"].encode_reply_address("u1")
            assert encoded == "reply+u1@mail.llmbox.local"
        finally:
            close_services(services)


class TestCreateApp:
    def test_routes_registered(self, tmp_path: Path) -> None:
        services = initialize_services(_base_settings(tmp_path))
        app = create_app(services)
        try:
            assert isinstance(app, FastAPI)
            paths = {route.path for route in app.routes}  # type: ignore[attr-defined]
            assert {
                "/webhooks/email",
                "/personifeed/signup",
                "/personifeed/batch",
                "/health",
                "/ready",
                "/metrics",
            } <= paths
        finally:
            close_services(services)

    def test_lifespan_closes_database(self, tmp_path: Path) -> None:
        services = initialize_services(_base_settings(tmp_path))
        db_conn = MagicMock(wraps=services["db_conn"])
        services["db_conn"] = db_conn
        app = create_app(services)

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        db_conn.close.assert_called_once()
