from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..observability.logging import get_logger
from ..responses import error_response


def unhandled_error_response(request: Request, exc: Exception) -> Response:
    # Response stays generic in production; the traceback goes to the logs.
    rid = getattr(getattr(request, "state", None), "request_id", None)
    get_logger("unhandled").error(
        "unhandled_exception",
        request_id=str(rid) if rid else None,
        http_method=str(getattr(request, "method", "") or "").upper() or None,
        path=str(getattr(getattr(request, "url", None), "path", "") or ""),
        exc_info=exc,
    )
    return error_response(
        request=request,
        status_code=500,
        error="Internal server error",
        details=str(exc) if exc else None,
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Turns uncaught exceptions into the 500 envelope inside the CORS and
    request-id middlewares, so the response still carries their headers.
    Exceptions with a registered handler never reach this layer.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return unhandled_error_response(request, exc)
