"""Request ID middleware for HTTP request tracing.

Every response carries an ``X-Request-ID`` header (echoed from the client or
generated).  The ID, the HTTP method and the route path are bound into
structlog contextvars, so all log entries for one webhook can be correlated
without passing a logger around.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SERVICE_NAME = "llmbox"
REQUEST_ID_HEADER = "X-Request-ID"


def new_request_id(incoming: str | None) -> str:
    """Reuse a client-supplied ID when present, else mint a UUID4."""
    if incoming and incoming.strip():
        return incoming.strip()
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = new_request_id(request.headers.get(REQUEST_ID_HEADER))
        # Each request starts from an empty logging context.
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            service=SERVICE_NAME,
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
