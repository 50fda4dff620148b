"""Tests for signup validation and sender address extraction."""

from __future__ import annotations

import pytest

from llmbox.domain.errors import MalformedInputError
from llmbox.domain.validation import (
    MAX_EMAIL_LENGTH,
    MAX_PROMPT_LENGTH,
    extract_email_address,
    sanitize_prompt,
    validate_email,
    validate_prompt,
)


class TestExtractEmailAddress:
    """Display names and angle brackets are stripped from sender values."""

    @pytest.mark.parametrize(
        "raw",
        [
            '"Jane Doe" <jane@example.com>',
            "<jane@example.com>",
            "jane@example.com",
            " jane@example.com ",
        ],
    )
    def test_returns_bare_address(self, raw: str) -> None:
        assert extract_email_address(raw) == "jane@example.com"


class TestValidateEmail:
    def test_lowercases_and_trims(self) -> None:
        assert validate_email("  Reader@Example.COM ") == "reader@example.com"

    @pytest.mark.parametrize("bad", ["", "   ", None, "no-at-sign", "a@b", "a b@example.com"])
    def test_rejects_malformed(self, bad: str | None) -> None:
        with pytest.raises(MalformedInputError):
            validate_email(bad)

    def test_rejects_too_long(self) -> None:
        local = "a" * (MAX_EMAIL_LENGTH - len("@example.com") + 1)
        with pytest.raises(MalformedInputError, match="too long"):
            validate_email(f"{local}@example.com")


class TestValidatePrompt:
    def test_collapses_whitespace(self) -> None:
        assert validate_prompt("  AI   news\n\nand\tstartups ") == "AI news and startups"

    @pytest.mark.parametrize("bad", ["", "   \n", None])
    def test_rejects_empty(self, bad: str | None) -> None:
        with pytest.raises(MalformedInputError, match="required"):
            validate_prompt(bad)

    def test_rejects_too_long(self) -> None:
        with pytest.raises(MalformedInputError, match="too long"):
            validate_prompt("x" * (MAX_PROMPT_LENGTH + 1))

    def test_accepts_exact_max_length(self) -> None:
        assert len(validate_prompt("x" * MAX_PROMPT_LENGTH)) == MAX_PROMPT_LENGTH

    def test_sanitize_is_stable(self) -> None:
        once = sanitize_prompt(" a \n b ")
        assert sanitize_prompt(once) == once
