"""Outbound email delivery through the SendGrid v3 Mail Send API.

``EmailSender`` is the black-box boundary consumed by the pipeline;
``SendGridSender`` is the shipped implementation.  The plain body is always
sent, followed by the HTML alternative when one is set.  Threading headers are
passed through as custom headers; message ids get angle brackets on the
wire only when the stored token lacks them.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from llmbox.domain.errors import DeliveryError
from llmbox.domain.models import OutgoingEmail
from llmbox.resilience.retry import resilient_api_call

logger = structlog.get_logger()

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class EmailSender(Protocol):
    """Anything that can hand an ``OutgoingEmail`` to a mail transport."""

    def send(self, email: OutgoingEmail) -> None: ...


class RetryableStatusError(Exception):
    """A transient HTTP status from the mail API (rate limit or server error)."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"SendGrid returned {status_code}")


def ensure_angle_brackets(message_id: str) -> str:
    """Wrap a message id in angle brackets unless it already has them."""
    trimmed = message_id.strip()
    if not trimmed:
        return ""
    if trimmed.startswith("<") and trimmed.endswith(">"):
        return trimmed
    return f"<{trimmed}>"


def build_payload(email: OutgoingEmail) -> dict[str, Any]:
    """Render an ``OutgoingEmail`` as a SendGrid Mail Send request body."""
    payload: dict[str, Any] = {
        "personalizations": [{"to": [{"email": email.to_email}]}],
        "from": {"email": email.from_email},
        "subject": email.subject,
        "content": [{"type": "text/plain", "value": email.body}],
    }
    # SendGrid requires text/plain to come before text/html.
    if email.html_body:
        payload["content"].append({"type": "text/html", "value": email.html_body})

    headers: dict[str, str] = {}
    if email.in_reply_to:
        headers["In-Reply-To"] = ensure_angle_brackets(email.in_reply_to)
    references = [ensure_angle_brackets(ref) for ref in email.references]
    references = [ref for ref in references if ref]
    if references:
        headers["References"] = " ".join(references)
    if headers:
        payload["headers"] = headers

    return payload


class SendGridSender:
    """Send emails with the SendGrid HTTP API.

    Args:
        api_key: SendGrid API key.
        timeout: Request timeout in seconds.
        client: Optional preconfigured ``httpx.Client`` (used by tests).
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("SendGrid API key is not configured")
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    @resilient_api_call("sendgrid", retry_on=(httpx.TransportError, RetryableStatusError))
    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        response = self._client.post(
            SENDGRID_SEND_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableStatusError(response.status_code, response.text)
        return response

    def send(self, email: OutgoingEmail) -> None:
        """Send *email*.

        Raises:
            DeliveryError: If SendGrid rejects the message or stays
                unreachable after retries.
        """
        log = logger.bind(to=email.to_email, subject=email.subject)
        log.info("sendgrid_send_started")

        try:
            response = self._post(build_payload(email))
        except (httpx.HTTPError, RetryableStatusError) as exc:
            log.error("sendgrid_send_failed", error=str(exc))
            raise DeliveryError("Email send failed", {"error": str(exc)}) from exc

        if response.status_code in (401, 403):
            log.critical("sendgrid_auth_error", status_code=response.status_code)
            raise DeliveryError(
                "SendGrid rejected the API key", {"status_code": response.status_code}
            )
        if response.status_code >= 400:
            log.error(
                "sendgrid_bad_request",
                status_code=response.status_code,
                body=response.text,
            )
            raise DeliveryError(
                "SendGrid rejected the message",
                {"status_code": response.status_code, "body": response.text},
            )

        log.info(
            "sendgrid_send_completed",
            sendgrid_message_id=response.headers.get("x-message-id"),
        )

    def close(self) -> None:
        self._client.close()
