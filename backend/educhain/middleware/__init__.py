from __future__ import annotations

from .access_log import AccessLogMiddleware
from .rate_limit import RateLimitMiddleware
from .request_context import RequestContextMiddleware
from .server_errors import UnhandledErrorMiddleware

__all__ = ["AccessLogMiddleware", "RateLimitMiddleware", "RequestContextMiddleware", "UnhandledErrorMiddleware"]
