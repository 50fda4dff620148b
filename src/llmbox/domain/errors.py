"""Domain-specific exception classes for the email pipeline.

Each error carries the ``Outcome`` it is classified as at the webhook
boundary, so the HTTP layer never inspects exception types directly.
"""

from __future__ import annotations

from typing import Any

from llmbox.domain.types import Outcome


class LlmboxError(Exception):
    """Base class for all domain errors in the email pipeline.

    Attributes:
        outcome: Classification used when the error reaches a webhook handler.
        context: Structured details safe to log alongside the error.
    """

    outcome: Outcome = Outcome.INTERNAL_ERROR

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.context = context or {}
        super().__init__(message)


class MalformedInputError(LlmboxError):
    """Raised for structurally invalid input (missing fields, bad email syntax)."""

    outcome = Outcome.MALFORMED_INPUT


class FeedbackRejectedError(LlmboxError):
    """Raised when reply feedback is well-formed but cannot be accepted."""

    outcome = Outcome.FEEDBACK_REJECTED


class UnknownRecipientError(LlmboxError):
    """Raised when a decoded reply token does not resolve to an existing user.

    Attributes:
        token: The token decoded from the reply address.
    """

    outcome = Outcome.UNKNOWN_RECIPIENT

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"No user found for reply token '{token}'", {"token": token})


class SenderMismatchError(LlmboxError):
    """Raised when a reply arrives from an address other than the user's own."""

    outcome = Outcome.SENDER_MISMATCH

    def __init__(self, user_id: str, sender: str) -> None:
        self.user_id = user_id
        self.sender = sender
        super().__init__(
            f"Sender '{sender}' does not match the registered email of user '{user_id}'",
            {"user_id": user_id, "sender": sender},
        )


class DuplicateSignupError(LlmboxError):
    """Raised when a signup uses an email that is already registered."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email '{email}' is already registered (duplicate signup)")


class UpstreamFailureError(LlmboxError):
    """Raised when the generation or send collaborator fails."""

    outcome = Outcome.UPSTREAM_FAILURE


class GenerationError(UpstreamFailureError):
    """Raised when content generation fails or returns nothing usable."""


class DeliveryError(UpstreamFailureError):
    """Raised when an outbound email could not be handed to the transport."""


class ThreadingDegradedError(LlmboxError):
    """Raised when a reply must be threaded but the inbound email has no Message-ID."""


class StoreError(LlmboxError):
    """Raised for persistence failures other than a missing row."""


class RecordNotFoundError(StoreError):
    """Raised when a row looked up by key does not exist.

    Attributes:
        table: The table that was queried.
        key: The key value that was not found.
    """

    def __init__(self, table: str, key: str) -> None:
        self.table = table
        self.key = key
        super().__init__(f"No row in '{table}' for key '{key}'", {"table": table, "key": key})
