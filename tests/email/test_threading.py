"""Tests for outbound email construction with threading headers."""

from __future__ import annotations

from datetime import date

import pytest

from llmbox.domain.errors import ThreadingDegradedError
from llmbox.domain.models import IncomingEmail, User
from llmbox.email.threading import (
    FEEDBACK_CONFIRMATION_BODY,
    NEWSLETTER_FOOTER,
    ThreadFormatter,
    extend_references,
    format_digest_date,
    reply_subject,
)


class TestReplySubject:
    @pytest.mark.parametrize(
        ("subject", "expected"),
        [
            ("Hello", "Re: Hello"),
            ("Re: Hello", "Re: Hello"),
            ("", "Re: "),
            # Only the exact prefix counts.
            ("RE: Hello", "Re: RE: Hello"),
            ("re: Hello", "Re: re: Hello"),
            ("Re:Hello", "Re: Re:Hello"),
        ],
    )
    def test_prefix(self, subject: str, expected: str) -> None:
        assert reply_subject(subject) == expected

    def test_never_stacks(self) -> None:
        subject = "Question"
        for _ in range(5):
            subject = reply_subject(subject)
        assert subject == "Re: Question"


class TestExtendReferences:
    def test_appends_message_id(self) -> None:
        assert extend_references(["<a@x>"], "<b@x>") == ["<a@x>", "<b@x>"]

    def test_empty_chain(self) -> None:
        assert extend_references([], "<b@x>") == ["<b@x>"]

    def test_no_duplicate_when_already_last(self) -> None:
        assert extend_references(["<a@x>", "b@x"], "<b@x>") == ["<a@x>", "b@x"]

    def test_earlier_occurrence_still_appends(self) -> None:
        assert extend_references(["<b@x>", "<a@x>"], "<b@x>") == ["<b@x>", "<a@x>", "<b@x>"]

    def test_does_not_mutate_input(self) -> None:
        refs = ["<a@x>"]
        extend_references(refs, "<b@x>")
        assert refs == ["<a@x>"]


class TestFormatReply:
    def test_threaded_reply(
        self, formatter: ThreadFormatter, incoming_email: IncomingEmail
    ) -> None:
        reply = formatter.format_reply(incoming_email, "Paris.")

        assert reply.from_email == "assistant@llmbox.app"
        assert reply.to_email == "a@x.com"
        assert reply.subject == "Re: Quick question"
        assert reply.body == "Paris."
        assert reply.in_reply_to == "<q2@x.com>"
        assert reply.references == ["<q0@x.com>", "<q1@llmbox.app>", "<q2@x.com>"]

    def test_reply_carries_html_alternative(
        self, formatter: ThreadFormatter, incoming_email: IncomingEmail
    ) -> None:
        reply = formatter.format_reply(incoming_email, "**Paris.**")

        assert reply.body == "**Paris.**"
        assert reply.html_body is not None
        assert "<strong>Paris.</strong>" in reply.html_body

    def test_references_extend_incoming_chain(
        self, formatter: ThreadFormatter, incoming_email: IncomingEmail
    ) -> None:
        reply = formatter.format_reply(incoming_email, "x")
        n = len(incoming_email.references)
        assert reply.references[:n] == incoming_email.references
        assert len(reply.references) == n + 1

    def test_first_message_of_thread(self, formatter: ThreadFormatter) -> None:
        incoming = IncomingEmail(
            from_email="a@x.com",
            to_email="assistant@llmbox.app",
            subject="Re: Hi",
            message_id="<m1@x.com>",
        )
        reply = formatter.format_reply(incoming, "x")
        assert reply.subject == "Re: Hi"
        assert reply.references == ["<m1@x.com>"]

    def test_missing_message_id_raises(self, formatter: ThreadFormatter) -> None:
        incoming = IncomingEmail(from_email="a@x.com", to_email="assistant@llmbox.app")
        with pytest.raises(ThreadingDegradedError):
            formatter.format_reply(incoming, "x")

    def test_unthreaded_reply(self, formatter: ThreadFormatter) -> None:
        incoming = IncomingEmail(
            from_email="a@x.com",
            to_email="assistant@llmbox.app",
            subject="Hello",
            references=["<r@x>"],
        )
        reply = formatter.format_unthreaded_reply(incoming, "x")
        assert reply.subject == "Re: Hello"
        assert reply.html_body is not None
        assert reply.in_reply_to is None
        assert reply.references == []


class TestPersonifeedEmails:
    @pytest.fixture
    def subscriber(self) -> User:
        return User(id="u-42", email="reader@example.com", prompt="AI news")

    def test_digest_date(self) -> None:
        assert format_digest_date(date(2026, 1, 5)) == "Monday, January 5, 2026"

    def test_newsletter(self, formatter: ThreadFormatter, subscriber: User) -> None:
        email = formatter.format_newsletter(subscriber, "Today's news", date(2026, 1, 5))

        assert email.from_email == "reply+u-42@mail.personifeed.app"
        assert email.to_email == "reader@example.com"
        assert email.subject == "Your Daily Digest - Monday, January 5, 2026"
        assert email.body.startswith("Today's news\n\n---\n\n")
        assert email.body.endswith(NEWSLETTER_FOOTER)
        assert email.in_reply_to is None
        assert email.html_body is not None
        assert "<p>Today's news</p>" in email.html_body
        assert NEWSLETTER_FOOTER in email.html_body

    def test_feedback_confirmation_is_threaded(
        self, formatter: ThreadFormatter, subscriber: User
    ) -> None:
        incoming = IncomingEmail(
            from_email="reader@example.com",
            to_email="reply+u-42@mail.personifeed.app",
            subject="Re: Your Daily Digest - Monday, January 5, 2026",
            message_id="<fb@example.com>",
            references=["<nl@personifeed.app>"],
        )
        email = formatter.format_feedback_confirmation(subscriber, incoming)

        assert email.from_email == "reply+u-42@mail.personifeed.app"
        assert email.subject == "Re: Your Daily Digest - Monday, January 5, 2026"
        assert email.body == FEEDBACK_CONFIRMATION_BODY
        assert email.in_reply_to == "<fb@example.com>"
        assert email.references == ["<nl@personifeed.app>", "<fb@example.com>"]

    def test_feedback_confirmation_without_message_id(
        self, formatter: ThreadFormatter, subscriber: User
    ) -> None:
        incoming = IncomingEmail(from_email="reader@example.com", to_email="x@y.com")
        email = formatter.format_feedback_confirmation(subscriber, incoming)

        assert email.subject == "Re: Your Daily Digest"
        assert email.in_reply_to is None
        assert email.references == []
