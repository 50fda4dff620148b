"""LLM integration package.

Provides Anthropic client configuration, prompt templates, generation
request builders and the ``ContentGenerator`` boundary with its Anthropic
implementation.
"""

from llmbox.llm.client import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, get_anthropic_client
from llmbox.llm.generator import (
    AnthropicGenerator,
    ContentGenerator,
    build_newsletter_request,
    build_reply_request,
)

__all__ = [
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "AnthropicGenerator",
    "ContentGenerator",
    "build_newsletter_request",
    "build_reply_request",
    "get_anthropic_client",
]
