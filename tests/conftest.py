"""Shared pytest fixtures for the llmbox test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from llmbox.domain.models import GeneratedContent, IncomingEmail, User
from llmbox.email.routing import AddressRouter, RoutingConfig
from llmbox.email.threading import ThreadFormatter
from llmbox.store.schema import init_personalization_tables, open_database
from llmbox.store.sqlite import SQLitePersonalizationStore


@pytest.fixture
def routing_config() -> RoutingConfig:
    """Assistant at assistant@llmbox.app, reply addresses on mail.personifeed.app."""
    return RoutingConfig(
        assistant_addresses=("assistant@llmbox.app",),
        service_domains=("mail.personifeed.app",),
    )


@pytest.fixture
def address_router(routing_config: RoutingConfig) -> AddressRouter:
    return AddressRouter(routing_config)


@pytest.fixture
def formatter(routing_config: RoutingConfig) -> ThreadFormatter:
    return ThreadFormatter(routing_config)


@pytest.fixture
def db_conn() -> Iterator[sqlite3.Connection]:
    """In-memory SQLite database with the personalization tables."""
    conn = open_database(":memory:")
    init_personalization_tables(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn: sqlite3.Connection) -> SQLitePersonalizationStore:
    return SQLitePersonalizationStore(db_conn)


@pytest.fixture
def user(store: SQLitePersonalizationStore) -> User:
    """A registered subscriber."""
    return store.create_user("reader@example.com", "AI research and climate tech")


@pytest.fixture
def incoming_email() -> IncomingEmail:
    """A question sent to the assistant, carrying a short thread."""
    return IncomingEmail(
        from_email="a@x.com",
        to_email="assistant@llmbox.app",
        subject="Quick question",
        body="What is the capital of France?",
        message_id="<q2@x.com>",
        in_reply_to="<q1@llmbox.app>",
        references=["<q0@x.com>", "<q1@llmbox.app>"],
    )


@pytest.fixture
def mock_generator() -> MagicMock:
    """A ContentGenerator returning canned text."""
    generator = MagicMock()
    generator.generate.return_value = GeneratedContent(
        content="Paris is the capital of France.",
        model="claude-test",
        token_count=42,
        completion_time_ms=5,
    )
    return generator


@pytest.fixture
def mock_sender() -> MagicMock:
    """An EmailSender that accepts everything."""
    return MagicMock()


@pytest.fixture
def no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make tenacity backoff instantaneous."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
