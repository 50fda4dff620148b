"""Personifeed signup: validate the submitted email and prompt, create the user."""

from __future__ import annotations

import structlog

from llmbox.domain.models import User
from llmbox.domain.validation import validate_email, validate_prompt
from llmbox.store.base import PersonalizationStore

logger = structlog.get_logger()


def sign_up(store: PersonalizationStore, email: str | None, prompt: str | None) -> User:
    """Register a new newsletter subscriber.

    Args:
        store: Persistence for the new user.
        email: Submitted address; trimmed and lowercased before storage.
        prompt: Submitted personalization profile; whitespace is collapsed.

    Returns:
        The created, active user.

    Raises:
        MalformedInputError: If the email or prompt fails validation.
        DuplicateSignupError: If the email is already registered.
    """
    normalized_email = validate_email(email)
    sanitized_prompt = validate_prompt(prompt)

    user = store.create_user(normalized_email, sanitized_prompt)
    logger.info("signup_completed", user_id=user.id, prompt_length=len(sanitized_prompt))
    return user
