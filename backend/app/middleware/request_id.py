"""
Magic Movers Backend — Request ID Middleware
==============================================

What:  Assigns a correlation ID to each request and returns it in the
       X-Request-ID response header.
How:   Reuses a client-supplied X-Request-ID, otherwise generates a short
       UUID. The ID is stored in a ContextVar so loggers and exception
       handlers can include it, and in request.state for route handlers.
When:  Outermost application middleware.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests share a thread but not this value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the context, request state and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
