from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from cachetools import TTLCache
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..responses import error_response
from .request_context import client_ip


@dataclass(frozen=True)
class RateRule:
    name: str
    prefix: str
    limit: int
    window_s: float
    methods: frozenset[str] | None = None
    exact: bool = False
    message: str = "Too many requests from this IP, please try again later."

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method not in self.methods:
            return False
        if self.exact:
            return path == self.prefix
        return path.startswith(self.prefix)


_POST = frozenset({"POST"})

DEFAULT_RULES: tuple[RateRule, ...] = (
    RateRule(name="api", prefix="/api/", limit=100, window_s=15 * 60),
    RateRule(
        name="application_submit",
        prefix="/api/applications/submit",
        limit=5,
        window_s=60 * 60,
        methods=_POST,
        exact=True,
        message="Too many application submissions. Please try again later.",
    ),
    RateRule(
        name="verification_email",
        prefix="/api/applications/resend-verification",
        limit=3,
        window_s=15 * 60,
        methods=_POST,
        exact=True,
        message="Too many email requests. Please try again later.",
    ),
    RateRule(
        name="admin",
        prefix="/api/admin/",
        limit=30,
        window_s=60,
        message="Too many admin requests. Please slow down.",
    ),
    RateRule(name="onboarding", prefix="/api/onboarding/", limit=5, window_s=60, methods=_POST),
    RateRule(name="otp_send", prefix="/api/otp/send", limit=5, window_s=15 * 60, methods=_POST, exact=True),
    RateRule(name="otp_verify", prefix="/api/otp/verify", limit=10, window_s=15 * 60, methods=_POST, exact=True),
)


@dataclass
class _Bucket:
    window_start: float
    count: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Best-effort fixed-window rate limit per client IP and rule.
    In-memory per process; buckets expire with their window.
    """

    def __init__(self, app, *, rules: tuple[RateRule, ...] = DEFAULT_RULES, enabled: bool = True):
        super().__init__(app)
        self._rules = rules
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._buckets: dict[str, TTLCache[str, _Bucket]] = {
            r.name: TTLCache(maxsize=10_000, ttl=r.window_s) for r in rules
        }

    def _hit(self, rule: RateRule, key: str, now: float) -> int | None:
        """Count one request; return Retry-After seconds when over the limit."""
        with self._lock:
            buckets = self._buckets[rule.name]
            b = buckets.get(key)
            if b is None or (now - b.window_start) >= rule.window_s:
                b = _Bucket(window_start=now, count=0)
                buckets[key] = b
            b.count += 1
            if b.count > rule.limit:
                return int(max(1.0, rule.window_s - (now - b.window_start)))
        return None

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self._enabled:
            return await call_next(request)

        method = request.method.upper()
        path = str(request.url.path or "")
        key = client_ip(request)
        now = time.time()

        for rule in self._rules:
            if not rule.matches(method, path):
                continue
            retry_after = self._hit(rule, key, now)
            if retry_after is not None:
                return error_response(
                    request=request,
                    status_code=429,
                    error=rule.message,
                    extensions={"limit": rule.name},
                    headers={"Retry-After": str(retry_after)},
                )

        return await call_next(request)
