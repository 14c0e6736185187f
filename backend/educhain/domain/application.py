"""
Application lifecycle rules.

    pending --verify--> verified --approve--> approved --mark paid--> paid
                            \\--reject--> rejected --approve--> approved

Approval needs a verified email. `paid` is final. Functions here are pure:
they inspect a stored document and describe the update to apply, the
repository applies it conditionally on the document version.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from ..errors import BadRequest

ApplicationStatus = Literal["pending", "verified", "approved", "rejected", "paid"]

PENDING: ApplicationStatus = "pending"
VERIFIED: ApplicationStatus = "verified"
APPROVED: ApplicationStatus = "approved"
REJECTED: ApplicationStatus = "rejected"
PAID: ApplicationStatus = "paid"

STATUSES: tuple[str, ...] = (PENDING, VERIFIED, APPROVED, REJECTED, PAID)

# The token is only ever delivered by email.
PRIVATE_FIELDS: tuple[str, ...] = ("verificationToken",)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ApplicationData(BaseModel):
    # Forms post numbers for year/gpa.
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str | None = None
    studentId: str | None = None
    institution: str | None = None
    program: str | None = None
    year: str | None = None
    gpa: str | None = None
    additionalInfo: str | None = None


@dataclass
class Transition:
    set_fields: dict[str, Any]
    unset_fields: tuple[str, ...] = field(default_factory=tuple)


def new_application(
    *,
    wallet_address: str,
    email: str,
    pool_id: str,
    pool_address: str,
    application_data: ApplicationData,
    ipfs_hash: str,
    verification_token: str,
    now: datetime,
) -> dict[str, Any]:
    return {
        "walletAddress": wallet_address.lower(),
        "email": email.lower(),
        "poolId": pool_id,
        "poolAddress": pool_address.lower(),
        "ipfsHash": ipfs_hash or "",
        "applicationData": application_data.model_dump(),
        "verificationToken": verification_token,
        "emailVerified": False,
        "status": PENDING,
        "adminNotes": "",
        "submittedAt": now,
        "createdAt": now,
        "updatedAt": now,
        "version": 0,
    }


def applicant_name(app: dict[str, Any]) -> str:
    data = app.get("applicationData") if isinstance(app.get("applicationData"), dict) else {}
    return str((data or {}).get("name") or "").strip() or "Student"


# Short reasons are what batch approval reports per id.
_APPROVE_MESSAGES = {
    "Email not verified": "Application email must be verified before approval",
    "Already approved": "Application already approved",
    "Already paid": "Application already paid",
}


def approve_block_reason(app: dict[str, Any]) -> str | None:
    if not bool(app.get("emailVerified")):
        return "Email not verified"
    status = app.get("status")
    if status == APPROVED:
        return "Already approved"
    if status == PAID:
        return "Already paid"
    return None


def check_can_verify(app: dict[str, Any]) -> None:
    if bool(app.get("emailVerified")):
        raise BadRequest("Email already verified")


def check_can_approve(app: dict[str, Any]) -> None:
    reason = approve_block_reason(app)
    if reason:
        raise BadRequest(_APPROVE_MESSAGES[reason])


def check_can_reject(app: dict[str, Any]) -> None:
    status = app.get("status")
    if status == REJECTED:
        raise BadRequest("Application already rejected")
    if status == PAID:
        raise BadRequest("Application already paid")


def check_can_mark_paid(app: dict[str, Any]) -> None:
    if app.get("status") != APPROVED:
        raise BadRequest("Only approved applications can be marked as paid")


def verify(now: datetime) -> Transition:
    # Clearing the token makes it single-use.
    return Transition(
        set_fields={"emailVerified": True, "verifiedAt": now, "status": VERIFIED},
        unset_fields=("verificationToken",),
    )


def review(status: ApplicationStatus, *, admin_address: str | None, notes: str | None, now: datetime) -> Transition:
    return Transition(
        set_fields={
            "status": status,
            "reviewedBy": str(admin_address or "").strip().lower() or None,
            "reviewedAt": now,
            "adminNotes": str(notes or ""),
        }
    )


def mark_paid(*, transaction_hash: str | None, now: datetime) -> Transition:
    fields: dict[str, Any] = {"status": PAID, "paidAt": now}
    tx = str(transaction_hash or "").strip()
    if tx:
        fields["transactionHash"] = tx
    return Transition(set_fields=fields)
