from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..db.mongo import utcnow
from ..errors import BadRequest


class UsersRepo:
    def __init__(self, collection: Any):
        self._col = collection

    def create(self, doc: dict[str, Any]) -> dict[str, Any]:
        try:
            res = self._col.insert_one(doc)
        except DuplicateKeyError as e:
            raise BadRequest("User with this wallet address already exists") from e
        return {**doc, "_id": res.inserted_id}

    def get_by_wallet(self, wallet_address: str) -> dict[str, Any] | None:
        return self._col.find_one({"walletAddress": str(wallet_address or "").strip().lower()})

    def get_by_email(self, email: str) -> dict[str, Any] | None:
        return self._col.find_one({"email": str(email or "").strip().lower()})

    def find_by_valid_token(self, token: str, *, now: datetime) -> dict[str, Any] | None:
        tok = str(token or "").strip()
        if not tok:
            return None
        return self._col.find_one(
            {"verificationToken": tok, "verificationTokenExpiry": {"$gt": now}}
        )

    def update_by_wallet(
        self,
        wallet_address: str,
        *,
        set_fields: dict[str, Any],
        unset_fields: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        update: dict[str, Any] = {"$set": {**set_fields, "updatedAt": utcnow()}}
        if unset_fields:
            update["$unset"] = {k: "" for k in unset_fields}
        return self._col.find_one_and_update(
            {"walletAddress": str(wallet_address or "").strip().lower()},
            update,
            return_document=ReturnDocument.AFTER,
        )

    def mark_email_verified(self, wallet_address: str) -> dict[str, Any] | None:
        return self.update_by_wallet(
            wallet_address,
            set_fields={"emailVerified": True},
            unset_fields=("verificationToken", "verificationTokenExpiry"),
        )

    def find_invalid(self) -> list[dict[str, Any]]:
        return list(self._col.find(_INVALID_USER_FILTER))

    def delete_invalid(self) -> int:
        return int(self._col.delete_many(_INVALID_USER_FILTER).deleted_count)


_INVALID_USER_FILTER: dict[str, Any] = {
    "$or": [
        {"walletAddress": None},
        {"email": None},
        {"role": None},
    ]
}
