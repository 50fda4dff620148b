"""FastAPI endpoint for inbound email webhooks (SendGrid Inbound Parse format).

The multipart form carries ``from``, ``to``, ``subject``, ``text`` and the
raw ``headers`` blob.  Headers are decoded and the recipient is classified
once, here at the boundary; the email is then dispatched to the direct
assistant or to personifeed feedback handling.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from llmbox.api.outcomes import WebhookResult, build_response
from llmbox.domain.errors import LlmboxError, MalformedInputError
from llmbox.domain.models import IncomingEmail
from llmbox.domain.types import Outcome
from llmbox.domain.validation import extract_email_address
from llmbox.email.headers import parse_thread_headers
from llmbox.email.routing import (
    AddressRouter,
    DirectAssistantRoute,
    PersonifeedReplyRoute,
    Route,
)
from llmbox.observability.metrics import WEBHOOK_OUTCOMES

logger = structlog.get_logger()

router = APIRouter()


def _form_text(form: Any, key: str) -> str:
    """Return a form field as text; file parts and missing fields read as empty."""
    value = form.get(key)
    return value if isinstance(value, str) else ""


def build_incoming_email(form: Any, route: Route) -> IncomingEmail:
    """Assemble the ``IncomingEmail`` for a routed webhook form.

    Raises:
        MalformedInputError: If the sender has no usable address.
    """
    from_email = extract_email_address(_form_text(form, "from"))
    if "@" not in from_email:
        raise MalformedInputError("Sender address is not an email address", {"from": from_email})

    thread = parse_thread_headers(_form_text(form, "headers"))
    to_email = (
        route.address
        if isinstance(route, DirectAssistantRoute | PersonifeedReplyRoute)
        else extract_email_address(_form_text(form, "to"))
    )

    return IncomingEmail(
        from_email=from_email,
        to_email=to_email,
        subject=_form_text(form, "subject").strip(),
        body=_form_text(form, "text"),
        message_id=thread.message_id,
        in_reply_to=thread.in_reply_to,
        references=thread.references,
    )


async def handle_inbound_email(form: Any, services: dict[str, Any]) -> WebhookResult:
    """Route and handle one inbound email.

    Domain errors are classified by their ``outcome``; anything else is an
    internal error.  Never raises.
    """
    try:
        from_raw = _form_text(form, "from").strip()
        to_raw = _form_text(form, "to").strip()
        if not from_raw or not to_raw:
            raise MalformedInputError("Missing required fields: from and to")

        address_router: AddressRouter = services["router"]
        route = address_router.classify(to_raw)

        if isinstance(route, DirectAssistantRoute):
            incoming = build_incoming_email(form, route)
            responder = services.get("responder")
            if responder is None:
                raise LlmboxError("Direct assistant is not configured")
            reply = await asyncio.to_thread(responder.respond, incoming)
            return WebhookResult(
                outcome=Outcome.REPLIED,
                detail="Reply sent",
                extra={"to": reply.to_email},
            )

        if isinstance(route, PersonifeedReplyRoute):
            incoming = build_incoming_email(form, route)
            processor = services["feedback_processor"]
            outcome = await asyncio.to_thread(processor.process, incoming, route)
            detail = (
                "Feedback received"
                if outcome == Outcome.FEEDBACK_ACCEPTED
                else "No feedback content after cleaning"
            )
            return WebhookResult(outcome=outcome, detail=detail)

        logger.info("webhook_recipient_unrecognized", to=to_raw)
        return WebhookResult(outcome=Outcome.IGNORED, detail="Recipient not handled")

    except LlmboxError as exc:
        log = logger.error if exc.outcome == Outcome.INTERNAL_ERROR else logger.warning
        log("webhook_failed", outcome=exc.outcome.value, error=str(exc), context=exc.context)
        return WebhookResult(outcome=exc.outcome, detail=str(exc))
    except Exception as exc:
        logger.exception("webhook_internal_error", error=str(exc))
        return WebhookResult(outcome=Outcome.INTERNAL_ERROR, detail="Internal server error")


@router.post("/webhooks/email")
async def inbound_email_webhook(request: Request) -> JSONResponse:
    """Receive one inbound email and reply with its outcome."""
    try:
        form = await request.form()
    except Exception as exc:
        logger.warning("webhook_body_unparseable", error=str(exc))
        result = WebhookResult(outcome=Outcome.MALFORMED_INPUT, detail="Body is not form data")
    else:
        result = await handle_inbound_email(form, request.app.state.services)

    WEBHOOK_OUTCOMES.labels(outcome=result.outcome.value).inc()
    logger.info("webhook_completed", outcome=result.outcome.value, status=result.status_code)
    return build_response(result)
