from __future__ import annotations

from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..db.mongo import parse_object_id, utcnow
from ..domain.application import STATUSES, Transition
from ..errors import BadRequest


class ApplicationsRepo:
    def __init__(self, collection: Any):
        self._col = collection

    # --- writes ---

    def create(self, doc: dict[str, Any]) -> dict[str, Any]:
        try:
            res = self._col.insert_one(doc)
        except DuplicateKeyError as e:
            # The (walletAddress, poolAddress) index catches concurrent submits.
            raise BadRequest("You have already applied to this scholarship pool") from e
        return {**doc, "_id": res.inserted_id}

    def apply_transition(
        self, application_id: Any, *, expected_version: int, transition: Transition
    ) -> dict[str, Any] | None:
        """
        Apply a status transition only if nobody changed the document since
        it was read. Returns the updated document, or None on a lost race.
        """
        oid = parse_object_id(application_id)
        if oid is None:
            return None
        update: dict[str, Any] = {
            "$set": {**transition.set_fields, "updatedAt": utcnow()},
            "$inc": {"version": 1},
        }
        if transition.unset_fields:
            update["$unset"] = {k: "" for k in transition.unset_fields}
        version = int(expected_version)
        # Documents written before versioning have no field; treat as 0.
        version_filter: Any = {"$in": [0, None]} if version == 0 else version
        return self._col.find_one_and_update(
            {"_id": oid, "version": version_filter},
            update,
            return_document=ReturnDocument.AFTER,
        )

    def replace_verification_token(self, application_id: Any, token: str) -> bool:
        oid = parse_object_id(application_id)
        if oid is None:
            return False
        res = self._col.update_one(
            {"_id": oid, "emailVerified": False},
            {"$set": {"verificationToken": token, "updatedAt": utcnow()}},
        )
        return bool(res.matched_count)

    # --- reads ---

    def get(self, application_id: Any) -> dict[str, Any] | None:
        oid = parse_object_id(application_id)
        if oid is None:
            return None
        return self._col.find_one({"_id": oid})

    def find_by_wallet_and_pool(self, *, wallet_address: str, pool_address: str) -> dict[str, Any] | None:
        return self._col.find_one(
            {"walletAddress": wallet_address.lower(), "poolAddress": pool_address.lower()}
        )

    def find_by_token(self, token: str) -> dict[str, Any] | None:
        tok = str(token or "").strip()
        if not tok:
            return None
        return self._col.find_one({"verificationToken": tok})

    def list(
        self,
        filters: dict[str, Any] | None = None,
        *,
        skip: int = 0,
        limit: int | None = None,
        sort_field: str = "submittedAt",
    ) -> list[dict[str, Any]]:
        cursor = self._col.find(filters or {}).sort(sort_field, DESCENDING)
        if skip:
            cursor = cursor.skip(int(skip))
        if limit:
            cursor = cursor.limit(int(limit))
        return list(cursor)

    def list_for_wallet(self, wallet_address: str) -> list[dict[str, Any]]:
        return self.list({"walletAddress": wallet_address.lower()})

    def list_for_pool(self, pool_address: str, *, status: str | None = None) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"poolAddress": pool_address.lower()}
        if status:
            filters["status"] = status
        return self.list(filters)

    def list_activity_for_address(self, address: str) -> list[dict[str, Any]]:
        addr = address.lower()
        return self.list(
            {"$or": [{"walletAddress": addr}, {"poolAddress": addr}]},
            sort_field="createdAt",
        )

    def count(self, filters: dict[str, Any] | None = None) -> int:
        return int(self._col.count_documents(filters or {}))

    def statistics(self, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        base = dict(filters or {})
        by_status: dict[str, int] = {}
        for status in STATUSES:
            n = self.count({**base, "status": status})
            if n:
                by_status[status] = n
        return {
            "total": self.count(base),
            "verified": self.count({**base, "emailVerified": True}),
            "byStatus": by_status,
        }
