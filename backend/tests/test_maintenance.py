from __future__ import annotations

from educhain.maintenance import clean_invalid_users, normalize_application_case
from educhain.repositories.users_repo import UsersRepo
from fakes import FakeDatabase


def _raw_db() -> FakeDatabase:
    # No unique indexes: mixed-case data predates them.
    return FakeDatabase()


def test_normalize_is_a_dry_run_by_default():
    db = _raw_db()
    col = db["applications"]
    col.insert_one({"walletAddress": "0xABC", "poolAddress": "0xDEF", "email": "A@B.edu"})
    col.insert_one({"walletAddress": "0xfff", "poolAddress": "0xdef", "email": "f@b.edu"})

    report = normalize_application_case(col)
    assert report.total == 2
    assert len(report.updated) == 1
    assert report.unchanged == 1
    assert col.find_one({"walletAddress": "0xABC"}) is not None


def test_normalize_applies_and_reports_duplicates():
    db = _raw_db()
    col = db["applications"]
    keep = col.insert_one({"walletAddress": "0xabc", "poolAddress": "0xdef", "email": "a@b.edu"}).inserted_id
    dup = col.insert_one({"walletAddress": "0xABC", "poolAddress": "0xDef", "email": "a@b.edu"}).inserted_id
    fix = col.insert_one({"walletAddress": "0x111", "poolAddress": "0xDEF", "email": "Z@b.edu"}).inserted_id

    report = normalize_application_case(col, apply=True)

    assert report.updated == [str(fix)]
    assert report.duplicates == [
        {"id": str(dup), "duplicateOf": str(keep), "walletAddress": "0xabc", "poolAddress": "0xdef"}
    ]
    fixed = col.find_one({"_id": fix})
    assert fixed["poolAddress"] == "0xdef"
    assert fixed["email"] == "z@b.edu"
    assert "updatedAt" in fixed
    # Duplicates are left untouched for manual review.
    assert col.find_one({"_id": dup})["walletAddress"] == "0xABC"


def test_clean_invalid_users():
    db = _raw_db()
    col = db["users"]
    col.insert_one({"walletAddress": "0xok", "email": "ok@uni.edu", "role": "student"})
    col.insert_one({"walletAddress": "0xnoemail", "role": "student"})
    col.insert_one({"walletAddress": None, "email": "x@uni.edu", "role": "provider"})
    repo = UsersRepo(col)

    found = clean_invalid_users(repo)
    assert len(found) == 2
    assert col.count_documents({}) == 3

    clean_invalid_users(repo, apply=True)
    assert col.count_documents({}) == 1
    assert col.find_one({})["walletAddress"] == "0xok"
