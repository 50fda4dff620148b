"""Pydantic v2 models for the email pipeline.

Provides frozen (immutable) models for inbound and outbound emails, the
personifeed records (users, customizations, newsletters), generation
requests/results, and batch run statistics.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llmbox.domain.types import CustomizationType


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


class ThreadHeaders(BaseModel):
    """Normalized threading identity extracted from raw email headers."""

    model_config = ConfigDict(frozen=True)

    message_id: str | None = None
    html_body: str | None = None
    in_reply_to: str | None = None
    in_reply_to: str | None = None
    references: list[str] = Field(default_factory=list)


class IncomingEmail(BaseModel):
    """An inbound email delivered by the provider webhook.

    ``message_id`` is needed for threading; ``in_reply_to`` and
    ``references`` are absent on the first message of a thread.
    """

    model_config = ConfigDict(frozen=True)

    from_email: str
    to_email: str
    subject: str = ""
    body: str = ""
    message_id: str | None = None  # RFC 5322 Message-ID, verbatim
    in_reply_to: str | None = None
    references: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)


class OutgoingEmail(BaseModel):
    """An outbound email handed to the send collaborator.

    When ``in_reply_to`` and ``references`` are set the email threads as a
    reply; empty values send it as a new conversation.
    ``html_body`` is an optional ``text/html`` alternative to ``body``.
    """

    model_config = ConfigDict(frozen=True)

    from_email: str
    to_email: str
    subject: str
    body: str
    html_body: str | None = None
    in_reply_to: str | None = None
    references: list[str] = Field(default_factory=list)


class User(BaseModel):
    """A personifeed subscriber and their free-text personalization profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    prompt: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Customization(BaseModel):
    """One accepted piece of feedback. Append-only."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    type: CustomizationType = CustomizationType.REPLY
    content: str
    created_at: datetime = Field(default_factory=utc_now)


class Newsletter(BaseModel):
    """A newsletter generated and sent to one user on one run."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    content: str
    sent_at: datetime = Field(default_factory=utc_now)


class GenerationRequest(BaseModel):
    """Input to the generation collaborator."""

    model_config = ConfigDict(frozen=True)

    profile: str  # system-level instructions
    context: str  # the user-facing material to respond to


class GeneratedContent(BaseModel):
    """Result of one generation call including usage tracking."""

    model_config = ConfigDict(frozen=True)

    content: str
    model: str
    token_count: int = 0
    completion_time_ms: int = 0


class UserRunResult(BaseModel):
    """Outcome of one user's generate -> persist -> send sequence in a batch run."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    succeeded: bool
    newsletter_id: str | None = None
    error: str | None = None


class BatchStats(BaseModel):
    """Aggregate statistics of one batch run."""

    model_config = ConfigDict(frozen=True)

    total_users: int = 0
    success_count: int = 0
    failure_count: int = 0
    duration_ms: int = 0

    @model_validator(mode="after")
    def counts_must_add_up(self) -> BatchStats:
        """Ensure every user is counted exactly once."""
        if self.success_count + self.failure_count != self.total_users:
            raise ValueError(
                f"success_count ({self.success_count}) + failure_count "
                f"({self.failure_count}) must equal total_users ({self.total_users})"
            )
        return self

    @classmethod
    def from_results(cls, results: list[UserRunResult], duration_ms: int) -> BatchStats:
        """Reduce per-user results into aggregate counts."""
        successes = sum(1 for r in results if r.succeeded)
        return cls(
            total_users=len(results),
            success_count=successes,
            failure_count=len(results) - successes,
            duration_ms=duration_ms,
        )

    def to_response(self) -> dict[str, int]:
        """Render as the camelCase stats payload of the batch endpoint."""
        return {
            "totalUsers": self.total_users,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "durationMs": self.duration_ms,
        }
