"""Input validation shared by the webhook and signup paths."""

from __future__ import annotations

import re
from email.utils import parseaddr

from llmbox.domain.errors import MalformedInputError

# RFC 5322, simplified
EMAIL_REGEX = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

MAX_EMAIL_LENGTH = 255
MAX_PROMPT_LENGTH = 2000
MAX_FEEDBACK_LENGTH = 2000

_WHITESPACE_RUN = re.compile(r"\s+")


def extract_email_address(value: str) -> str:
    """Strip an optional display name from an address.

    Handles ``"Name" <a@x.com>``, ``<a@x.com>`` and ``a@x.com``.

    Args:
        value: The raw header value.

    Returns:
        The bare address, or the trimmed input when no address is found.
    """
    _, address = parseaddr(value)
    return address.strip() if address else value.strip()


def validate_email(email: str | None) -> str:
    """Validate and normalize a signup email address.

    Args:
        email: The address submitted by the user.

    Returns:
        The trimmed, lowercased address.

    Raises:
        MalformedInputError: If the address is missing, too long or malformed.
    """
    if not email or not email.strip():
        raise MalformedInputError("Email is required")

    trimmed = email.strip()
    if len(trimmed) > MAX_EMAIL_LENGTH:
        raise MalformedInputError(f"Email is too long (max {MAX_EMAIL_LENGTH} characters)")
    if not EMAIL_REGEX.match(trimmed):
        raise MalformedInputError("Invalid email format")
    return trimmed.lower()


def sanitize_prompt(prompt: str) -> str:
    """Collapse whitespace runs into single spaces and trim."""
    return _WHITESPACE_RUN.sub(" ", prompt).strip()


def validate_prompt(prompt: str | None) -> str:
    """Validate a signup prompt and return its sanitized form.

    Raises:
        MalformedInputError: If the prompt is empty or longer than
            ``MAX_PROMPT_LENGTH`` characters.
    """
    if not prompt or not prompt.strip():
        raise MalformedInputError("Prompt is required")

    trimmed = prompt.strip()
    if len(trimmed) > MAX_PROMPT_LENGTH:
        raise MalformedInputError(
            f"Prompt is too long (max {MAX_PROMPT_LENGTH} characters, got {len(trimmed)})"
        )
    return sanitize_prompt(trimmed)
