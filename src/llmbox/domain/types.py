"""Domain enumerations shared across the email pipeline."""

from enum import StrEnum


class CustomizationType(StrEnum):
    """Kinds of customization rows recorded against a user."""

    REPLY = "reply"


class RouteKind(StrEnum):
    """Destination of an inbound email, decided from its ``to`` address."""

    DIRECT_ASSISTANT = "direct-assistant"
    PERSONIFEED_REPLY = "personifeed-reply"
    UNRECOGNIZED = "unrecognized"


class Outcome(StrEnum):
    """Internal classification of a processed webhook delivery.

    Mapped to an HTTP status in exactly one place
    (``llmbox.api.outcomes.OUTCOME_STATUS``).
    """

    REPLIED = "replied"
    FEEDBACK_ACCEPTED = "feedback_accepted"
    NO_OP = "no_op"
    IGNORED = "ignored"
    FEEDBACK_REJECTED = "feedback_rejected"
    MALFORMED_INPUT = "malformed_input"
    UNKNOWN_RECIPIENT = "unknown_recipient"
    SENDER_MISMATCH = "sender_mismatch"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL_ERROR = "internal_error"
