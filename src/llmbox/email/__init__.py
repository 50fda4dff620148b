"""Email domain: header parsing, routing, feedback cleanup, threading, HTML rendering."""

from llmbox.email.feedback import normalize_feedback
from llmbox.email.headers import parse_thread_headers, same_message_id
from llmbox.email.rendering import markdown_to_html
from llmbox.email.routing import (
    AddressRouter,
    DirectAssistantRoute,
    PersonifeedReplyRoute,
    RoutingConfig,
    UnrecognizedRoute,
)
from llmbox.email.threading import ThreadFormatter, extend_references, reply_subject

__all__ = [
    "AddressRouter",
    "DirectAssistantRoute",
    "PersonifeedReplyRoute",
    "RoutingConfig",
    "ThreadFormatter",
    "UnrecognizedRoute",
    "extend_references",
    "markdown_to_html",
    "normalize_feedback",
    "parse_thread_headers",
    "reply_subject",
    "same_message_id",
]
