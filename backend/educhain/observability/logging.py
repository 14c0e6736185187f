from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that are noisy at INFO.
_QUIET = ("pymongo", "botocore", "boto3", "urllib3", "httpx", "httpcore")

_configured = False


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(*, level: str | int = "INFO") -> None:
    """
    JSON lines on stdout for structlog and stdlib loggers alike. Request-scoped
    keys (request_id, client_ip) come from structlog's contextvars, bound by
    RequestContextMiddleware.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_processors(),
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn installs its own handlers; route it through the root formatter.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)


def email_domain(email: str | None) -> str | None:
    """Log-safe view of an address: keep only the domain."""
    raw = str(email or "").strip().lower()
    if "@" not in raw:
        return None
    return raw.split("@", 1)[1] or None
