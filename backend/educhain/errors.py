from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AppError(Exception):
    """Base error for expected failures in services.

    Caught by a FastAPI exception handler and rendered into the
    `{success: false, error}` envelope.
    """

    message: str
    status_code: int = 500
    extensions: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class BadRequest(AppError):
    status_code: int = 400


@dataclass
class NotFound(AppError):
    status_code: int = 404


@dataclass
class Conflict(AppError):
    status_code: int = 409


@dataclass
class ContentStoreError(AppError):
    status_code: int = 502


@dataclass
class EmailDeliveryError(AppError):
    status_code: int = 500
