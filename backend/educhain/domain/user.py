from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Literal

UserRole = Literal["student", "provider"]

PREFERENCE_DEFAULTS: dict[str, bool] = {
    "emailNotifications": True,
    "applicationUpdates": True,
    "weeklyDigest": False,
}

# Never returned by the API.
PRIVATE_FIELDS: tuple[str, ...] = ("verificationToken", "verificationTokenExpiry")


def token_ttl(hours: int) -> timedelta:
    return timedelta(hours=int(hours))


def _base_user(
    *, wallet_address: str, role: UserRole, email: str, token: str, now: datetime, token_ttl_hours: int
) -> dict[str, Any]:
    return {
        "walletAddress": wallet_address.strip().lower(),
        "role": role,
        "email": email.strip().lower(),
        "emailVerified": False,
        "verificationToken": token,
        "verificationTokenExpiry": now + token_ttl(token_ttl_hours),
        **PREFERENCE_DEFAULTS,
        "createdAt": now,
        "updatedAt": now,
    }


def new_student(
    *,
    wallet_address: str,
    email: str,
    full_name: str,
    institute: str,
    program: str,
    graduation_year: int,
    document_cid: str | None,
    token: str,
    now: datetime,
    token_ttl_hours: int,
) -> dict[str, Any]:
    user = _base_user(
        wallet_address=wallet_address, role="student", email=email, token=token, now=now,
        token_ttl_hours=token_ttl_hours,
    )
    user["studentData"] = {
        "fullName": full_name,
        "institute": institute,
        "program": program,
        "graduationYear": int(graduation_year),
        "documentCID": document_cid,
    }
    user["fullName"] = full_name
    user["institution"] = institute
    return user


def new_provider(
    *,
    wallet_address: str,
    email: str,
    organization_name: str,
    website: str | None,
    description: str,
    contact_person: str,
    document_cid: str | None,
    token: str,
    now: datetime,
    token_ttl_hours: int,
) -> dict[str, Any]:
    user = _base_user(
        wallet_address=wallet_address, role="provider", email=email, token=token, now=now,
        token_ttl_hours=token_ttl_hours,
    )
    user["providerData"] = {
        "organizationName": organization_name,
        "website": website or "",
        "description": description,
        "contactPerson": contact_person,
        "documentCID": document_cid,
        "verified": False,
    }
    user["organizationName"] = organization_name
    return user


def public_profile(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "wallet": user.get("walletAddress"),
        "role": user.get("role"),
        "email": user.get("email"),
        "emailVerified": bool(user.get("emailVerified")),
        "fullName": user.get("fullName"),
        "institution": user.get("institution"),
        "organizationName": user.get("organizationName"),
        "createdAt": user.get("createdAt"),
        "updatedAt": user.get("updatedAt"),
    }


def preferences(user: dict[str, Any]) -> dict[str, bool]:
    out: dict[str, bool] = {}
    for k, default in PREFERENCE_DEFAULTS.items():
        v = user.get(k)
        out[k] = default if v is None else bool(v)
    return out
