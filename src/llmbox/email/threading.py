"""Outbound email construction with RFC 5322 threading headers.

Provides ``ThreadFormatter`` which turns an inbound email plus generated
content into a threaded reply, and builds the personifeed newsletter and
feedback-confirmation emails sent from per-user reply addresses.
"""

from __future__ import annotations

from datetime import date

import structlog

from llmbox.domain.errors import ThreadingDegradedError
from llmbox.domain.models import IncomingEmail, OutgoingEmail, User
from llmbox.email.headers import same_message_id
from llmbox.email.rendering import render_newsletter_html, render_reply_html
from llmbox.email.routing import AddressRouter, RoutingConfig

logger = structlog.get_logger()

REPLY_PREFIX = "Re: "

NEWSLETTER_FOOTER = "Reply to this email to customize future newsletters."

FEEDBACK_CONFIRMATION_BODY = (
    "Thanks for your feedback! Your customization will be reflected in "
    "tomorrow's newsletter."
)


def reply_subject(subject: str) -> str:
    """Prefix ``Re: `` unless the subject already starts with exactly ``Re: ``.

    The check is case-sensitive so long threads never accumulate
    ``Re: Re: Re: ...``.
    """
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX}{subject}"


def extend_references(references: list[str], message_id: str) -> list[str]:
    """Append *message_id* to *references* unless it is already the last entry.

    Existing entries are never removed or reordered.
    """
    extended = list(references)
    if not extended or not same_message_id(extended[-1], message_id):
        extended.append(message_id)
    return extended


def format_digest_date(day: date) -> str:
    """Render a date as ``Monday, January 5, 2026``."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


class ThreadFormatter:
    """Build outbound emails for both products.

    Args:
        config: Routing configuration, used to derive per-user reply addresses.
    """

    def __init__(self, config: RoutingConfig) -> None:
        self._router = AddressRouter(config)

    def format_reply(self, incoming: IncomingEmail, content: str) -> OutgoingEmail:
        """Build a threaded reply to *incoming*.

        ``from``/``to`` are swapped, the subject gets a single ``Re: `` prefix,
        ``In-Reply-To`` is the incoming Message-ID and ``References`` is the
        incoming chain extended by that id.

        Args:
            incoming: The email being answered.
            content: The generated reply body.

        Returns:
            The reply, ready to send.

        Raises:
            ThreadingDegradedError: If *incoming* has no Message-ID.
        """
        if not incoming.message_id:
            raise ThreadingDegradedError(
                "Cannot thread a reply to an email without a Message-ID",
                {"from_email": incoming.from_email, "subject": incoming.subject},
            )

        return OutgoingEmail(
            from_email=incoming.to_email,
            to_email=incoming.from_email,
            subject=reply_subject(incoming.subject),
            body=content,
            html_body=render_reply_html(content),
            in_reply_to=incoming.message_id,
            references=extend_references(incoming.references, incoming.message_id),
        )

    def format_unthreaded_reply(self, incoming: IncomingEmail, content: str) -> OutgoingEmail:
        """Build a reply with empty threading headers.

        Used when the inbound email carried no Message-ID: the answer is still
        sent, it just starts a new conversation in the recipient's client.
        """
        logger.warning(
            "threading_degraded",
            from_email=incoming.from_email,
            subject=incoming.subject,
        )
        return OutgoingEmail(
            from_email=incoming.to_email,
            to_email=incoming.from_email,
            subject=reply_subject(incoming.subject),
            body=content,
            html_body=render_reply_html(content),
        )

    def reply_address(self, user: User) -> str:
        """The per-user address newsletters are sent from and replied to."""
        return self._router.encode_reply_address(user.id)

    def format_newsletter(self, user: User, content: str, today: date) -> OutgoingEmail:
        """Build the daily newsletter email for *user*."""
        subject = f"Your Daily Digest - {format_digest_date(today)}"
        return OutgoingEmail(
            from_email=self.reply_address(user),
            to_email=user.email,
            subject=subject,
            body=f"{content}\n\n---\n\n{NEWSLETTER_FOOTER}",
            html_body=render_newsletter_html(content, subject, NEWSLETTER_FOOTER),
        )

    def format_feedback_confirmation(self, user: User, incoming: IncomingEmail) -> OutgoingEmail:
        """Build the acknowledgement sent after feedback was stored."""
        if incoming.message_id:
            return OutgoingEmail(
                from_email=self.reply_address(user),
                to_email=user.email,
                subject=reply_subject(incoming.subject or "Your Daily Digest"),
                body=FEEDBACK_CONFIRMATION_BODY,
                in_reply_to=incoming.message_id,
                references=extend_references(incoming.references, incoming.message_id),
            )
        return OutgoingEmail(
            from_email=self.reply_address(user),
            to_email=user.email,
            subject=reply_subject(incoming.subject or "Your Daily Digest"),
            body=FEEDBACK_CONFIRMATION_BODY,
        )
