"""FastAPI endpoint for personifeed signups."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from llmbox.domain.errors import DuplicateSignupError, MalformedInputError
from llmbox.personifeed.signup import sign_up

logger = structlog.get_logger()

router = APIRouter()


@router.post("/personifeed/signup")
async def signup(request: Request) -> JSONResponse:
    """Create a subscriber from a JSON ``{email, prompt}`` body.

    Returns:
        200 with the new ``userId``; 400 for invalid input; 409 when the
        email is already registered.
    """
    try:
        payload: Any = await request.json()
    except ValueError:
        return JSONResponse({"success": False, "error": "Body must be JSON"}, status_code=400)
    if not isinstance(payload, dict):
        return JSONResponse(
            {"success": False, "error": "Body must be a JSON object"}, status_code=400
        )

    email = payload.get("email")
    prompt = payload.get("prompt")
    store = request.app.state.services["store"]

    try:
        user = await asyncio.to_thread(
            sign_up,
            store,
            email if isinstance(email, str) else None,
            prompt if isinstance(prompt, str) else None,
        )
    except MalformedInputError as exc:
        logger.info("signup_rejected", reason=str(exc))
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except DuplicateSignupError as exc:
        logger.info("signup_duplicate")
        return JSONResponse({"success": False, "error": str(exc)}, status_code=409)

    return JSONResponse(
        {
            "success": True,
            "userId": user.id,
            "message": "Success! You'll receive your first newsletter tomorrow.",
        }
    )
