from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from ..settings import Settings

APPLICATIONS = "applications"
USERS = "users"
OTPS = "otps"


def create_client(settings: Settings) -> MongoClient:
    # tz_aware so stored datetimes come back comparable with utcnow().
    return MongoClient(
        settings.mongo_uri,
        tz_aware=True,
        serverSelectionTimeoutMS=int(settings.mongo_server_selection_timeout_ms),
        appname="educhain-backend",
    )


def get_database(client: MongoClient, settings: Settings) -> Database:
    return client[settings.mongo_db_name]


def ensure_indexes(db: Any) -> None:
    """Create the indexes the API relies on. Safe to run on every start."""
    apps = db[APPLICATIONS]
    apps.create_index([("walletAddress", ASCENDING), ("poolAddress", ASCENDING)], unique=True)
    apps.create_index([("verificationToken", ASCENDING)], unique=True, sparse=True)
    apps.create_index([("walletAddress", ASCENDING)])
    apps.create_index([("email", ASCENDING)])
    apps.create_index([("poolId", ASCENDING)])
    apps.create_index([("status", ASCENDING)])
    apps.create_index([("submittedAt", DESCENDING)])

    users = db[USERS]
    users.create_index([("walletAddress", ASCENDING)], unique=True)
    users.create_index([("email", ASCENDING)])
    users.create_index([("role", ASCENDING)])

    otps = db[OTPS]
    otps.create_index([("email", ASCENDING), ("walletAddress", ASCENDING)])
    # TTL: MongoDB deletes codes once expiresAt has passed.
    otps.create_index([("expiresAt", ASCENDING)], expireAfterSeconds=0)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any) -> ObjectId | None:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value or "").strip())
    except (InvalidId, TypeError):
        return None


def to_api(doc: dict[str, Any] | None, *, drop: tuple[str, ...] = ()) -> dict[str, Any] | None:
    """Shape a stored document for JSON responses (string ids, hidden fields)."""
    if not doc:
        return None
    out = {k: v for k, v in doc.items() if k not in drop}
    if "_id" in out:
        out["_id"] = str(out["_id"])
    return out
