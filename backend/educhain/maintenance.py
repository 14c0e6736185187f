"""
Data repair jobs run from `backend/scripts/`.

Both jobs report what they would change and only write when `apply=True`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import DuplicateKeyError

from .db.mongo import utcnow
from .observability.logging import get_logger
from .repositories.users_repo import UsersRepo

log = get_logger("maintenance")

_CASE_FIELDS = ("walletAddress", "poolAddress", "email")


@dataclass
class NormalizeReport:
    total: int = 0
    updated: list[str] = field(default_factory=list)
    duplicates: list[dict[str, Any]] = field(default_factory=list)

    @property
    def unchanged(self) -> int:
        return self.total - len(self.updated) - len(self.duplicates)


def _lowered(doc: dict[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for key in _CASE_FIELDS:
        v = doc.get(key)
        if isinstance(v, str) and v != v.lower():
            out[key] = v.lower()
    return out


def normalize_application_case(collection: Any, *, apply: bool = False) -> NormalizeReport:
    """
    Lowercase wallet, pool and email on stored applications. A document whose
    lowercased (wallet, pool) pair already exists is a duplicate and is only
    reported.
    """
    report = NormalizeReport()
    for doc in collection.find({}):
        report.total += 1
        changes = _lowered(doc)
        if not changes:
            continue

        app_id = str(doc["_id"])
        wallet = changes.get("walletAddress", doc.get("walletAddress"))
        pool = changes.get("poolAddress", doc.get("poolAddress"))
        clash = collection.find_one({"walletAddress": wallet, "poolAddress": pool, "_id": {"$ne": doc["_id"]}})
        if clash:
            report.duplicates.append(
                {"id": app_id, "duplicateOf": str(clash["_id"]), "walletAddress": wallet, "poolAddress": pool}
            )
            continue

        if apply:
            try:
                collection.update_one({"_id": doc["_id"]}, {"$set": {**changes, "updatedAt": utcnow()}})
            except DuplicateKeyError:
                report.duplicates.append({"id": app_id, "walletAddress": wallet, "poolAddress": pool})
                continue
        report.updated.append(app_id)

    log.info(
        "normalize_application_case",
        applied=apply,
        total=report.total,
        updated=len(report.updated),
        duplicates=len(report.duplicates),
    )
    return report


def clean_invalid_users(users: UsersRepo, *, apply: bool = False) -> list[dict[str, Any]]:
    """Users missing walletAddress, email or role. Deleted only when `apply`."""
    invalid = users.find_invalid()
    deleted = users.delete_invalid() if apply and invalid else 0
    log.info("clean_invalid_users", applied=apply, found=len(invalid), deleted=deleted)
    return invalid
