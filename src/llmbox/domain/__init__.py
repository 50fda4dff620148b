"""Domain types, models, validation, and errors for the email pipeline."""

from llmbox.domain.errors import (
    DeliveryError,
    DuplicateSignupError,
    FeedbackRejectedError,
    GenerationError,
    LlmboxError,
    MalformedInputError,
    RecordNotFoundError,
    SenderMismatchError,
    StoreError,
    ThreadingDegradedError,
    UnknownRecipientError,
    UpstreamFailureError,
)
from llmbox.domain.models import (
    BatchStats,
    Customization,
    GeneratedContent,
    GenerationRequest,
    IncomingEmail,
    Newsletter,
    OutgoingEmail,
    ThreadHeaders,
    User,
    UserRunResult,
)
from llmbox.domain.types import CustomizationType, Outcome, RouteKind

__all__ = [
    "BatchStats",
    "Customization",
    "CustomizationType",
    "DeliveryError",
    "DuplicateSignupError",
    "FeedbackRejectedError",
    "GeneratedContent",
    "GenerationError",
    "GenerationRequest",
    "IncomingEmail",
    "LlmboxError",
    "MalformedInputError",
    "Newsletter",
    "Outcome",
    "OutgoingEmail",
    "RecordNotFoundError",
    "RouteKind",
    "SenderMismatchError",
    "StoreError",
    "ThreadHeaders",
    "ThreadingDegradedError",
    "UnknownRecipientError",
    "UpstreamFailureError",
    "User",
    "UserRunResult",
]
