from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop when behind the proxy, else the socket peer."""
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return (request.client.host if request.client else "") or "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id: the caller's X-Request-Id (truncated) or a
    fresh UUID. The id is kept on `request.state` for error envelopes, bound
    into structlog's contextvars for every log line of the request, and
    echoed on the response.
    """

    async def dispatch(self, request: Request, call_next):
        inbound = (request.headers.get("x-request-id") or "").strip()[:128]
        request_id = inbound or str(uuid.uuid4())
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id, client_ip=client_ip(request)):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
