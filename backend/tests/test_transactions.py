from __future__ import annotations

from datetime import datetime, timezone

from bson import ObjectId

from educhain.services.transactions import classify, to_transaction


def _app(**extra):
    doc = {
        "_id": ObjectId(),
        "walletAddress": "0xstudent",
        "email": "s@uni.edu",
        "poolId": "stem-2025",
        "poolAddress": "0xpool",
        "status": "pending",
        "applicationData": {"name": "Ada", "institution": "Analytical U", "program": "Math", "gpa": "3.9"},
        "createdAt": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    doc.update(extra)
    return doc


def test_classify_follows_review_status():
    assert classify(_app(status="paid")) == ("scholarship_received", "completed")
    assert classify(_app(status="approved")) == ("application_approved", "approved")
    assert classify(_app(status="rejected")) == ("application_rejected", "rejected")
    assert classify(_app(status="verified")) == ("application", "pending")
    assert classify({}) == ("application", "pending")


def test_to_transaction_shape():
    app = _app(status="paid", transactionHash="0xtx")
    tx = to_transaction(app)
    assert tx["id"] == str(app["_id"])
    assert tx["amount"] == "0"
    assert tx["poolName"] == "stem-2025"
    assert tx["txHash"] == "0xtx"
    assert tx["description"] == "Received scholarship from stem-2025"
    assert tx["metadata"] == {
        "applicationId": str(app["_id"]),
        "studentName": "Ada",
        "institution": "Analytical U",
        "program": "Math",
    }

    bare = to_transaction(_app(poolId=None, applicationData=None))
    assert bare["poolName"] == "Unknown Pool"
    assert bare["description"] == "Applied to pool"
    assert bare["metadata"]["studentName"] is None


def test_history_matches_student_or_pool_address(client, db):
    db["applications"].insert_one(_app())
    db["applications"].insert_one(_app(walletAddress="0xother", status="approved"))
    db["applications"].insert_one(_app(walletAddress="0xother", poolAddress="0xelse"))

    r = client.get("/api/transactions/wallet/0xSTUDENT")
    assert r.status_code == 200
    assert r.json()["count"] == 1

    r = client.get("/api/transactions/wallet/0xPOOL")
    body = r.json()
    assert body["count"] == 2
    assert {t["type"] for t in body["data"]} == {"application", "application_approved"}

    assert client.get("/api/transactions/wallet/0xnobody").json()["data"] == []


def test_transaction_details(client, db):
    app_id = str(db["applications"].insert_one(_app(status="approved")).inserted_id)

    r = client.get(f"/api/transactions/{app_id}")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["type"] == "application_approved"
    assert data["studentInfo"] == {
        "name": "Ada",
        "email": "s@uni.edu",
        "institution": "Analytical U",
        "program": "Math",
        "gpa": "3.9",
    }

    for missing in (str(ObjectId()), "bogus"):
        r = client.get(f"/api/transactions/{missing}")
        assert r.status_code == 404
        assert r.json()["error"] == "Transaction not found"
