"""Per-request correlation id and log context."""

import re
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-Id"

# Accepted shape for caller-supplied ids
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def resolve_correlation_id(supplied: str | None) -> str:
    """Reuse the caller's id when it is short and plain, otherwise mint one."""
    if supplied and _ACCEPTED_ID.fullmatch(supplied):
        return supplied
    return str(uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id.

    The id is kept on `request.state.correlation_id` for the exception
    handlers, bound into structlog contextvars together with the method and
    path, and echoed back in the `X-Correlation-Id` response header.
    Context from the previous request on this task is dropped first.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
