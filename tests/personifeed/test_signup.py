"""Tests for personifeed signup."""

from __future__ import annotations

import pytest

from llmbox.domain.errors import DuplicateSignupError, MalformedInputError
from llmbox.personifeed.signup import sign_up
from llmbox.store.sqlite import SQLitePersonalizationStore


class TestSignUp:
    def test_creates_active_user(self, store: SQLitePersonalizationStore) -> None:
        user = sign_up(store, "  Reader@Example.com ", "AI  news\nand startups")

        assert user.email == "reader@example.com"
        assert user.prompt == "AI news and startups"
        assert user.is_active is True
        assert store.get_user(user.id) == user

    def test_duplicate_email_is_case_insensitive(self, store: SQLitePersonalizationStore) -> None:
        sign_up(store, "reader@example.com", "AI news")

        with pytest.raises(DuplicateSignupError):
            sign_up(store, "READER@example.com", "Other")

    def test_invalid_email(self, store: SQLitePersonalizationStore) -> None:
        with pytest.raises(MalformedInputError):
            sign_up(store, "not-an-email", "AI news")
        assert store.list_active_users() == []

    def test_missing_prompt(self, store: SQLitePersonalizationStore) -> None:
        with pytest.raises(MalformedInputError):
            sign_up(store, "reader@example.com", None)
