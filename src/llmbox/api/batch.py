"""FastAPI endpoint that triggers one newsletter batch run.

Protected by a shared bearer secret; the scheduler (cron) calls it once a day.
"""

from __future__ import annotations

import hmac

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from llmbox.personifeed.batch import BatchDispatcher

logger = structlog.get_logger()

router = APIRouter()


def verify_bearer_token(authorization: str | None, secret: str) -> bool:
    """Check an ``Authorization: Bearer <token>`` header against *secret*.

    Uses a constant-time comparison.
    """
    if not authorization:
        return False
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return False
    return hmac.compare_digest(token.strip().encode(), secret.encode())


@router.post("/personifeed/batch")
async def trigger_batch(request: Request) -> JSONResponse:
    """Run the newsletter batch and report its statistics."""
    secret = request.app.state.settings.batch_trigger_secret.get_secret_value()
    if not secret:
        logger.error("BATCH_TRIGGER_SECRET not configured")
        return JSONResponse(
            {"success": False, "error": "Batch trigger secret not configured"}, status_code=503
        )

    if not verify_bearer_token(request.headers.get("Authorization"), secret):
        logger.warning("batch_trigger_unauthorized")
        return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)

    dispatcher: BatchDispatcher | None = request.app.state.services.get("dispatcher")
    if dispatcher is None:
        return JSONResponse(
            {"success": False, "error": "Newsletter generation is not configured"},
            status_code=503,
        )

    stats = await dispatcher.run()
    return JSONResponse({"success": True, "stats": stats.to_response()})
