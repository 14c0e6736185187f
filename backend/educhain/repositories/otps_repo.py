from __future__ import annotations

from typing import Any

from pymongo import DESCENDING

from ..db.mongo import utcnow


class OtpsRepo:
    def __init__(self, collection: Any):
        self._col = collection

    def replace_for(self, doc: dict[str, Any]) -> dict[str, Any]:
        """Drop earlier codes for the (email, wallet) pair and store a new one."""
        self._col.delete_many({"email": doc["email"], "walletAddress": doc["walletAddress"]})
        res = self._col.insert_one(doc)
        return {**doc, "_id": res.inserted_id}

    def latest_unverified(self, *, email: str, wallet_address: str) -> dict[str, Any] | None:
        docs = list(
            self._col.find(
                {
                    "email": email.strip().lower(),
                    "walletAddress": wallet_address.strip().lower(),
                    "verified": False,
                }
            )
            .sort("createdAt", DESCENDING)
            .limit(1)
        )
        return docs[0] if docs else None

    def record_attempt(self, otp_id: Any, *, previous_attempts: int, attempts: int, verified: bool) -> bool:
        """
        Persist one attempt. Guarded by the attempt count that was read, so
        concurrent guesses cannot exceed the attempt budget.
        """
        res = self._col.update_one(
            {"_id": otp_id, "attempts": int(previous_attempts), "verified": False},
            {"$set": {"attempts": int(attempts), "verified": bool(verified), "updatedAt": utcnow()}},
        )
        return bool(res.modified_count)
