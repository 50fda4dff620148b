"""Content generation through the Claude API.

``ContentGenerator`` is the black-box boundary consumed by the pipeline;
``AnthropicGenerator`` is the shipped implementation.  Request builders
turn an inbound email or a subscriber's profile into a ``GenerationRequest``.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol

import anthropic
import structlog
from anthropic import Anthropic

from llmbox.domain.errors import GenerationError
from llmbox.domain.models import (
    Customization,
    GeneratedContent,
    GenerationRequest,
    IncomingEmail,
    User,
)
from llmbox.email.threading import format_digest_date
from llmbox.llm.client import DEFAULT_MAX_TOKENS, DEFAULT_MODEL
from llmbox.llm.prompts import (
    ASSISTANT_SYSTEM_PROMPT,
    ASSISTANT_USER_PROMPT,
    NEWSLETTER_FEEDBACK_SECTION,
    NEWSLETTER_PROFILE_SECTION,
    NEWSLETTER_SYSTEM_PROMPT,
    NEWSLETTER_USER_PROMPT,
)
from llmbox.resilience.retry import resilient_api_call

logger = structlog.get_logger()

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class ContentGenerator(Protocol):
    """Anything that turns a ``GenerationRequest`` into text."""

    def generate(self, request: GenerationRequest) -> GeneratedContent: ...


def build_reply_request(incoming: IncomingEmail) -> GenerationRequest:
    """Frame an inbound email for the direct assistant."""
    return GenerationRequest(
        profile=ASSISTANT_SYSTEM_PROMPT,
        context=ASSISTANT_USER_PROMPT.format(
            from_email=incoming.from_email,
            subject=incoming.subject,
            body=incoming.body,
        ),
    )


def build_newsletter_request(
    user: User,
    customizations: Sequence[Customization],
    today: date,
) -> GenerationRequest:
    """Combine a subscriber's profile and accumulated feedback into one request.

    Args:
        user: The subscriber; ``user.prompt`` is the personalization profile.
        customizations: Accepted feedback, oldest first.
        today: Run date shown in the newsletter header.

    Returns:
        The generation request for this subscriber's newsletter.
    """
    sections: list[str] = []
    if user.prompt.strip():
        sections.append(NEWSLETTER_PROFILE_SECTION.format(profile=user.prompt.strip()))
    if customizations:
        items = "\n".join(
            f"{index}. {customization.content}"
            for index, customization in enumerate(customizations, start=1)
        )
        sections.append(NEWSLETTER_FEEDBACK_SECTION.format(feedback_items=items))

    return GenerationRequest(
        profile=NEWSLETTER_SYSTEM_PROMPT,
        context=NEWSLETTER_USER_PROMPT.format(
            sections="\n".join(sections),
            today=format_digest_date(today),
        ),
    )


@resilient_api_call("anthropic", retry_on=TRANSIENT_ERRORS)
def _create_message(
    client: Anthropic,
    model: str,
    max_tokens: int,
    request: GenerationRequest,
) -> Any:
    return client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=[
            {
                "type": "text",
                "text": request.profile,
                "cache_control": {"type": "ephemeral"},
            }
        ],
        messages=[
            {
                "role": "user",
                "content": request.context,
            }
        ],
    )


class AnthropicGenerator:
    """Generate content with the Claude API.

    Args:
        client: Configured Anthropic client instance.
        model: Model ID to use.
        max_tokens: Upper bound on generated tokens.
    """

    def __init__(
        self,
        client: Anthropic,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, request: GenerationRequest) -> GeneratedContent:
        """Run one generation call.

        Transient API errors are retried; anything still failing, and an
        empty completion, is raised as ``GenerationError``.

        Args:
            request: System profile and user context.

        Returns:
            The generated text with model and token usage.

        Raises:
            GenerationError: If the API call fails or returns no text.
        """
        started = time.monotonic()
        try:
            response = _create_message(self._client, self._model, self._max_tokens, request)
        except Exception as exc:
            logger.error("generation_failed", model=self._model, error=str(exc))
            raise GenerationError("Content generation failed", {"error": str(exc)}) from exc

        completion_time_ms = int((time.monotonic() - started) * 1000)
        content = response.content[0].text if response.content else ""
        if not content or not content.strip():
            raise GenerationError("Model returned empty content", {"model": self._model})

        input_tokens: int = response.usage.input_tokens
        output_tokens: int = response.usage.output_tokens

        logger.info(
            "generation_completed",
            model=self._model,
            token_count=input_tokens + output_tokens,
            completion_time_ms=completion_time_ms,
            response_length=len(content),
        )

        return GeneratedContent(
            content=content,
            model=self._model,
            token_count=input_tokens + output_tokens,
            completion_time_ms=completion_time_ms,
        )
