"""Outbound email delivery: the ``EmailSender`` boundary and its SendGrid client."""

from llmbox.delivery.sendgrid import EmailSender, SendGridSender, build_payload

__all__ = [
    "EmailSender",
    "SendGridSender",
    "build_payload",
]
