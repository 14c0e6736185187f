"""
Transaction history derived from applications.

The chain is never read here: each application is presented as one activity
entry whose type follows its review status.
"""

from __future__ import annotations

from typing import Any

from ..domain import application as rules
from ..errors import NotFound
from ..repositories.applications_repo import ApplicationsRepo

_KIND_BY_STATUS: dict[str, tuple[str, str]] = {
    rules.PAID: ("scholarship_received", "completed"),
    rules.APPROVED: ("application_approved", "approved"),
    rules.REJECTED: ("application_rejected", "rejected"),
}

_DESCRIPTIONS = {
    "scholarship_received": "Received scholarship from {pool}",
    "application_approved": "Application approved for {pool}",
    "application_rejected": "Application rejected for {pool}",
    "application": "Applied to {pool}",
}


def classify(app: dict[str, Any]) -> tuple[str, str]:
    return _KIND_BY_STATUS.get(str(app.get("status") or ""), ("application", "pending"))


def _pool_name(app: dict[str, Any]) -> str:
    return str(app.get("poolId") or "") or "Unknown Pool"


def _data(app: dict[str, Any]) -> dict[str, Any]:
    data = app.get("applicationData")
    return data if isinstance(data, dict) else {}


def to_transaction(app: dict[str, Any]) -> dict[str, Any]:
    kind, status = classify(app)
    data = _data(app)
    app_id = str(app.get("_id"))
    return {
        "id": app_id,
        "type": kind,
        "status": status,
        "amount": "0",
        "poolAddress": app.get("poolAddress"),
        "poolName": _pool_name(app),
        "timestamp": app.get("createdAt"),
        "txHash": app.get("transactionHash"),
        "description": _DESCRIPTIONS[kind].format(pool=str(app.get("poolId") or "pool")),
        "metadata": {
            "applicationId": app_id,
            "studentName": data.get("name"),
            "institution": data.get("institution"),
            "program": data.get("program"),
        },
    }


class TransactionService:
    def __init__(self, *, applications: ApplicationsRepo):
        self._apps = applications

    def history(self, address: str) -> list[dict[str, Any]]:
        return [to_transaction(a) for a in self._apps.list_activity_for_address(address)]

    def details(self, transaction_id: str) -> dict[str, Any]:
        app = self._apps.get(transaction_id)
        if not app:
            raise NotFound("Transaction not found")
        kind, status = classify(app)
        data = _data(app)
        return {
            "id": str(app["_id"]),
            "type": kind,
            "status": status,
            "amount": "0",
            "poolAddress": app.get("poolAddress"),
            "poolName": _pool_name(app),
            "timestamp": app.get("createdAt"),
            "txHash": app.get("transactionHash"),
            "studentInfo": {
                "name": data.get("name"),
                "email": app.get("email"),
                "institution": data.get("institution"),
                "program": data.get("program"),
                "gpa": data.get("gpa"),
            },
        }
