from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import BadRequest

MAX_ATTEMPTS = 3


def generate_code() -> str:
    """Six-digit numeric code, never starting with 0."""
    return str(100000 + secrets.randbelow(900000))


def new_otp(*, email: str, wallet_address: str, code: str, now: datetime, ttl_minutes: int) -> dict[str, Any]:
    return {
        "email": email.strip().lower(),
        "walletAddress": wallet_address.strip().lower(),
        "otp": code,
        "expiresAt": now + timedelta(minutes=int(ttl_minutes)),
        "verified": False,
        "attempts": 0,
        "createdAt": now,
        "updatedAt": now,
    }


def _aware(dt: Any) -> datetime | None:
    if not isinstance(dt, datetime):
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class OtpAttempt:
    matched: bool
    attempts: int
    remaining: int


def check_otp(record: dict[str, Any], code: str, *, now: datetime, max_attempts: int = MAX_ATTEMPTS) -> OtpAttempt:
    """
    Count one verification attempt against a stored code.

    Raises for a used, expired or exhausted code. The caller persists the
    returned attempt count (and the verified flag when matched).
    """
    if bool(record.get("verified")):
        raise BadRequest("OTP already used")

    expires_at = _aware(record.get("expiresAt"))
    if expires_at is None or expires_at < now:
        raise BadRequest("OTP expired")

    attempts = int(record.get("attempts") or 0)
    if attempts >= int(max_attempts):
        raise BadRequest("Maximum verification attempts exceeded")

    attempts += 1
    matched = secrets.compare_digest(str(record.get("otp") or ""), str(code or "").strip())
    return OtpAttempt(matched=matched, attempts=attempts, remaining=max(0, int(max_attempts) - attempts))
