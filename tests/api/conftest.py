"""Fixtures for HTTP-level tests: a full app wired to mocks and in-memory SQLite."""

from __future__ import annotations

import sqlite3
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from llmbox.app import create_app
from llmbox.assistant import AssistantResponder
from llmbox.config import Settings
from llmbox.email.routing import AddressRouter
from llmbox.email.threading import ThreadFormatter
from llmbox.personifeed.batch import BatchDispatcher
from llmbox.personifeed.reply import FeedbackProcessor
from llmbox.store.sqlite import SQLitePersonalizationStore

BATCH_SECRET = "s3cret-token"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_path=":memory:",  # type: ignore[arg-type]
        service_email_address="assistant@llmbox.app",
        personifeed_email_domain="mail.personifeed.app",
        batch_trigger_secret=BATCH_SECRET,  # type: ignore[arg-type]
    )


@pytest.fixture
def services(
    settings: Settings,
    db_conn: sqlite3.Connection,
    store: SQLitePersonalizationStore,
    mock_generator: MagicMock,
    mock_sender: MagicMock,
) -> dict[str, Any]:
    routing_config = settings.routing_config()
    formatter = ThreadFormatter(routing_config)
    return {
        "_settings": settings,
        "db_conn": db_conn,
        "store": store,
        "router": AddressRouter(routing_config),
        "formatter": formatter,
        "generator": mock_generator,
        "sender": mock_sender,
        "responder": AssistantResponder(mock_generator, mock_sender, formatter),
        "feedback_processor": FeedbackProcessor(store, mock_sender, formatter),
        "dispatcher": BatchDispatcher(store, mock_generator, mock_sender, formatter),
    }


@pytest.fixture
def client(services: dict[str, Any]) -> TestClient:
    return TestClient(create_app(services))
