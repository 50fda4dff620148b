"""Webhook outcomes and their HTTP status codes.

Handlers compute a ``WebhookResult`` first; ``OUTCOME_STATUS`` is the one
place where an outcome becomes a status code.
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from llmbox.domain.types import Outcome

OUTCOME_STATUS: dict[Outcome, int] = {
    Outcome.REPLIED: 200,
    Outcome.FEEDBACK_ACCEPTED: 200,
    Outcome.NO_OP: 200,
    Outcome.IGNORED: 200,
    # Retrying cannot make overlong feedback acceptable.
    Outcome.FEEDBACK_REJECTED: 200,
    Outcome.MALFORMED_INPUT: 400,
    Outcome.SENDER_MISMATCH: 403,
    Outcome.UNKNOWN_RECIPIENT: 404,
    Outcome.INTERNAL_ERROR: 500,
    Outcome.UPSTREAM_FAILURE: 502,
}


class WebhookResult(BaseModel):
    """Internal result of handling one inbound email."""

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    detail: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return OUTCOME_STATUS[self.outcome]

    @property
    def success(self) -> bool:
        return self.status_code < 400


def build_response(result: WebhookResult) -> JSONResponse:
    """Render *result* as the webhook's JSON response."""
    content: dict[str, Any] = {"success": result.success, "outcome": result.outcome.value}
    if result.detail:
        key = "message" if result.success else "error"
        content[key] = result.detail
    content.update(result.extra)
    return JSONResponse(content=content, status_code=result.status_code)
