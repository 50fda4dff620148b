"""Personifeed reply handling: turn a newsletter reply into stored feedback.

Order for one reply: resolve the user, check the sender, normalize the
text, append a Customization, merge the feedback into the user's prompt,
then send a best-effort confirmation.  A retried delivery may append the
same Customization twice; the prompt merge is idempotent.
"""

from __future__ import annotations

import re

import structlog

from llmbox.delivery.sendgrid import EmailSender
from llmbox.domain.errors import (
    FeedbackRejectedError,
    RecordNotFoundError,
    SenderMismatchError,
    UnknownRecipientError,
)
from llmbox.domain.models import IncomingEmail, User
from llmbox.domain.types import CustomizationType, Outcome
from llmbox.domain.validation import MAX_FEEDBACK_LENGTH, extract_email_address
from llmbox.email.feedback import normalize_feedback
from llmbox.email.routing import PersonifeedReplyRoute
from llmbox.email.threading import ThreadFormatter
from llmbox.store.base import PersonalizationStore

logger = structlog.get_logger()

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _paragraphs(text: str) -> list[str]:
    return [part.strip() for part in _PARAGRAPH_BREAK.split(text) if part.strip()]


def merge_feedback(prompt: str, feedback: str) -> str:
    """Fold *feedback* into a personalization *prompt*.

    Feedback is appended as its own paragraph(s).  It is skipped only when
    the same paragraphs already appear, in order, in the prompt, so applying
    the same feedback twice leaves the prompt unchanged while short feedback
    that merely occurs inside a longer paragraph is still added.
    """
    current = prompt.strip()
    if not current:
        return feedback
    added = _paragraphs(feedback)
    if not added:
        return current
    existing = _paragraphs(current)
    width = len(added)
    for start in range(len(existing) - width + 1):
        if existing[start : start + width] == added:
            return current
    return f"{current}\n\n{feedback}"


class FeedbackProcessor:
    """Apply replies to personifeed newsletters.

    Args:
        store: Personalization store holding users and customizations.
        sender: Sends the confirmation email; ``None`` skips confirmations.
        formatter: Builds the confirmation email.
    """

    def __init__(
        self,
        store: PersonalizationStore,
        sender: EmailSender | None,
        formatter: ThreadFormatter,
    ) -> None:
        self._store = store
        self._sender = sender
        self._formatter = formatter

    def process(self, incoming: IncomingEmail, route: PersonifeedReplyRoute) -> Outcome:
        """Store the feedback carried by *incoming*.

        Args:
            incoming: The reply email.
            route: The decoded reply address naming the user.

        Returns:
            ``Outcome.FEEDBACK_ACCEPTED``, or ``Outcome.NO_OP`` when nothing
            is left after quoted text and signatures are removed.

        Raises:
            UnknownRecipientError: If no user matches the reply token.
            SenderMismatchError: If the reply was not sent by the user.
            FeedbackRejectedError: If the cleaned feedback is too long.
        """
        log = logger.bind(user_id=route.user_id)

        try:
            user = self._store.get_user(route.user_id)
        except RecordNotFoundError as exc:
            log.warning("reply_unknown_recipient", address=route.address)
            raise UnknownRecipientError(route.user_id) from exc

        sender = extract_email_address(incoming.from_email).lower()
        if sender != user.email.lower():
            log.warning("reply_sender_mismatch", sender=sender)
            raise SenderMismatchError(user.id, sender)

        feedback = normalize_feedback(incoming.body)
        if feedback is None:
            log.info("reply_feedback_empty")
            return Outcome.NO_OP

        if len(feedback) > MAX_FEEDBACK_LENGTH:
            log.warning("reply_feedback_too_long", length=len(feedback))
            raise FeedbackRejectedError(
                f"Feedback is too long (max {MAX_FEEDBACK_LENGTH} characters)",
                {"user_id": user.id, "length": len(feedback)},
            )

        customization = self._store.append_customization(
            user.id, feedback, CustomizationType.REPLY
        )
        merged = merge_feedback(user.prompt, feedback)
        if merged != user.prompt:
            self._store.update_user_prompt(user.id, merged)

        log.info(
            "reply_feedback_stored",
            customization_id=customization.id,
            feedback_length=len(feedback),
        )

        self._send_confirmation(incoming, user)
        return Outcome.FEEDBACK_ACCEPTED

    def _send_confirmation(self, incoming: IncomingEmail, user: User) -> None:
        if self._sender is None:
            return
        try:
            self._sender.send(self._formatter.format_feedback_confirmation(user, incoming))
        except Exception as exc:
            # Feedback is already stored; a lost confirmation does not fail the reply.
            logger.warning("reply_confirmation_failed", user_id=user.id, error=str(exc))
