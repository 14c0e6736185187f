from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..observability.logging import get_logger


def _route_path(request: Request) -> str:
    """
    Route template with its router prefix, e.g. `/api/user/profile/{wallet}`.
    Templates keep verification tokens and wallet addresses out of the logs.
    """
    scope = request.scope
    route = scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if not template:
        return "<unmatched>"
    template = str(template)

    # Included routes may carry only their own path; the prefix is whatever
    # precedes the concrete form of that path in the request.
    concrete = template
    for name, value in (scope.get("path_params") or {}).items():
        concrete = concrete.replace("{" + str(name) + "}", str(value))
    path = str(scope.get("path") or "")
    if concrete and path.endswith(concrete):
        return path[: len(path) - len(concrete)] + template
    return template


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One `request` event per call, with the matched route template."""

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self._exclude = frozenset(exclude_paths or ())
        self._log = get_logger("access")

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self._exclude:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log.exception(
                "request_failed",
                http_method=request.method,
                route=_route_path(request),
                duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
            )
            raise

        status_code = int(response.status_code)
        log = self._log.warning if status_code == 429 or status_code >= 500 else self._log.info
        log(
            "request",
            http_method=request.method,
            route=_route_path(request),
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
        )
        return response
