"""Tests for reply-text cleanup of personifeed feedback."""

from __future__ import annotations

import pytest

from llmbox.email.feedback import extract_latest_reply, normalize_feedback, strip_quoted_reply

GMAIL_REPLY = """New feedback here

On Mon, Jan 5, 2026 at 7:00 AM Personifeed <reply+u1@mail.personifeed.app> wrote:
> Your Daily Digest - Monday, January 5, 2026
>
> Today's top stories...
"""

WRAPPED_ATTRIBUTION_REPLY = """More startup funding news please.

On Mon, Jan 5, 2026 at 7:00 AM Personifeed
<reply+u1@mail.personifeed.app> wrote:

> Old newsletter text
"""

OUTLOOK_REPLY = """More climate news please

-----Original Message-----
From: Daily Digest <reply+u1@mail.personifeed.app>
Sent: Monday, January 5, 2026 7:00 AM
To: reader@example.com
Subject: Your Daily Digest - Monday, January 5, 2026

Today's top AI stories: ...
"""

OUTLOOK_HEADER_BLOCK_REPLY = """Fewer funding rounds, more research papers.

From: Daily Digest <reply+u1@mail.personifeed.app>
Sent: Monday, January 5, 2026 7:00 AM
To: reader@example.com
Subject: Your Daily Digest - Monday, January 5, 2026

Today's top AI stories: ...
"""


class TestNormalizeFeedback:
    """Only the newly written text survives."""

    def test_quoted_reply_with_attribution(self) -> None:
        assert normalize_feedback(GMAIL_REPLY) == "New feedback here"

    def test_attribution_wrapped_over_two_lines(self) -> None:
        assert normalize_feedback(WRAPPED_ATTRIBUTION_REPLY) == "More startup funding news please."

    def test_outlook_original_message_block(self) -> None:
        assert normalize_feedback(OUTLOOK_REPLY) == "More climate news please"

    def test_outlook_header_block_without_separator(self) -> None:
        assert (
            normalize_feedback(OUTLOOK_HEADER_BLOCK_REPLY)
            == "Fewer funding rounds, more research papers."
        )

    def test_leading_quote_before_new_text(self) -> None:
        text = "> old text\n\nPlease add a markets section"
        assert normalize_feedback(text) == "Please add a markets section"

    def test_signature_separator_cuts_the_rest(self) -> None:
        text = "Less crypto, more biotech.\n\n-- \nJane Doe\nCEO, Example Inc."
        assert normalize_feedback(text) == "Less crypto, more biotech."

    @pytest.mark.parametrize("separator", ["--", "----", "___", "  --  "])
    def test_signature_separator_variants(self, separator: str) -> None:
        assert normalize_feedback(f"Shorter please\n{separator}\nsig") == "Shorter please"

    def test_mobile_footer(self) -> None:
        text = "Add a weather section\n\nSent from my iPhone"
        assert normalize_feedback(text) == "Add a weather section"

    def test_indented_quotes_removed(self) -> None:
        text = "Keep it short\n   > quoted\n\t>> deeper"
        assert normalize_feedback(text) == "Keep it short"

    def test_attribution_without_quote_is_kept(self) -> None:
        text = "On Monday my sister wrote:\nplease include more recipes"
        assert normalize_feedback(text) == text

    def test_blank_runs_collapse(self) -> None:
        text = "First point\n\n\n\nSecond point   \n\n"
        assert normalize_feedback(text) == "First point\n\nSecond point"

    def test_crlf_line_endings(self) -> None:
        text = "Fewer headlines\r\n\r\nOn Tue, Jan 6, 2026 X wrote:\r\n> old\r\n"
        assert normalize_feedback(text) == "Fewer headlines"

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "   \n\n",
            "> only quoted\n> text",
            "-- \nsignature only",
            "Sent from my iPhone",
        ],
    )
    def test_empty_after_cleaning_is_none(self, text: str | None) -> None:
        assert normalize_feedback(text) is None


class TestIdempotency:
    """normalize(normalize(x)) == normalize(x)."""

    @pytest.mark.parametrize(
        "text",
        [
            GMAIL_REPLY,
            WRAPPED_ATTRIBUTION_REPLY,
            OUTLOOK_REPLY,
            OUTLOOK_HEADER_BLOCK_REPLY,
            "Less crypto.\n\n--\nJane",
            "  padded  \n\n\n text  ",
            "On Monday my sister wrote:\nplease include more recipes",
            "Line one\n\n\n> q\nLine two",
            "plain feedback",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = normalize_feedback(text)
        assert once is not None
        assert normalize_feedback(once) == once

    def test_strip_quoted_reply_idempotent(self) -> None:
        once = strip_quoted_reply(GMAIL_REPLY)
        assert strip_quoted_reply(once) == once


class TestExtractLatestReply:
    def test_cuts_at_original_message_separator(self) -> None:
        assert extract_latest_reply(OUTLOOK_REPLY) == "More climate news please"

    def test_plain_text_passes_through(self) -> None:
        assert extract_latest_reply("Shorter summaries please") == "Shorter summaries please"
