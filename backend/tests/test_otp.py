from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from educhain.container import build_services
from educhain.domain.otp import check_otp, generate_code, new_otp
from educhain.errors import BadRequest
from educhain.main import create_app
from educhain.repositories.otps_repo import OtpsRepo
from educhain.services.email import EmailSender
from fakes import make_settings

EMAIL = "new@uni.edu"
WALLET = "0xWallet"


def _send(client, email=EMAIL, wallet=WALLET):
    return client.post("/api/otp/send", json={"email": email, "walletAddress": wallet})


def _verify(client, code, email=EMAIL, wallet=WALLET):
    return client.post("/api/otp/verify", json={"email": email, "otp": code, "walletAddress": wallet})


def _stored_code(db) -> str:
    return db["otps"].find_one({"email": EMAIL.lower()})["otp"]


def test_send_stores_code_and_emails_it(client, db, ses):
    r = _send(client)
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "OTP sent to your email"
    assert body["data"] == {"email": EMAIL, "expiresIn": "10 minutes"}

    record = db["otps"].find_one({})
    assert record["walletAddress"] == "0xwallet"
    assert record["attempts"] == 0
    assert record["verified"] is False
    assert len(record["otp"]) == 6 and record["otp"].isdigit()
    assert record["expiresAt"] - record["createdAt"] == timedelta(minutes=10)
    assert ses.recipients() == [EMAIL]
    assert record["otp"] in ses.last_html()


def test_send_includes_code_in_development(db, ses):
    settings = make_settings(environment="development")
    services = build_services(db, settings, email=EmailSender(settings, client=ses))
    client = TestClient(create_app(services=services))

    r = _send(client)
    assert r.json()["data"]["otp"] == _stored_code(db)


def test_send_validation(client, db):
    r = client.post("/api/otp/send", json={"email": EMAIL})
    assert r.status_code == 400
    assert r.json()["error"] == "Email and wallet address are required"

    db["users"].insert_one({"walletAddress": "0xother", "email": EMAIL, "role": "student"})
    r = _send(client)
    assert r.status_code == 400
    assert r.json()["error"] == "This email is already registered"


def test_resend_replaces_previous_code(client, db):
    _send(client)
    _send(client)
    assert db["otps"].count_documents({}) == 1


def test_send_fails_when_email_cannot_be_delivered(client, ses):
    ses.fail = True
    r = _send(client)
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to send OTP email. Please try again."


def test_verify_success_is_single_use(client, db):
    _send(client)
    code = _stored_code(db)

    r = _verify(client, code, email="NEW@uni.edu", wallet="0xwallet")
    assert r.status_code == 200
    assert r.json()["data"] == {"verified": True, "email": EMAIL, "walletAddress": "0xwallet"}

    r = _verify(client, code)
    assert r.status_code == 400
    assert r.json()["error"] == "No OTP found. Please request a new one."


def test_verify_accepts_numeric_code(client, db):
    _send(client)
    r = _verify(client, int(_stored_code(db)))
    assert r.status_code == 200


def test_third_wrong_attempt_locks_the_code(client, db):
    _send(client)
    code = _stored_code(db)
    wrong = "000000"

    messages = [_verify(client, wrong).json()["error"] for _ in range(3)]
    assert messages == [
        "Invalid OTP. 2 attempts remaining.",
        "Invalid OTP. 1 attempts remaining.",
        "Invalid OTP. 0 attempts remaining.",
    ]

    r = _verify(client, code)
    assert r.status_code == 400
    assert r.json()["error"] == "Maximum verification attempts exceeded"


def test_expired_code_is_rejected(client, db):
    _send(client)
    code = _stored_code(db)
    db["otps"].update_one({}, {"$set": {"expiresAt": datetime.now(timezone.utc) - timedelta(seconds=1)}})

    r = _verify(client, code)
    assert r.status_code == 400
    assert r.json()["error"] == "OTP expired"


def test_verify_requires_all_fields_and_an_existing_code(client):
    r = client.post("/api/otp/verify", json={"email": EMAIL, "walletAddress": WALLET})
    assert r.status_code == 400
    assert r.json()["error"] == "Email, OTP, and wallet address are required"

    r = _verify(client, "123456")
    assert r.status_code == 400
    assert r.json()["error"] == "No OTP found. Please request a new one."


def test_check_otp_rules():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    record = new_otp(email=EMAIL, wallet_address=WALLET, code="123456", now=now, ttl_minutes=10)

    attempt = check_otp(record, "123456", now=now)
    assert attempt.matched and attempt.attempts == 1 and attempt.remaining == 2

    with pytest.raises(BadRequest, match="OTP already used"):
        check_otp({**record, "verified": True}, "123456", now=now)
    with pytest.raises(BadRequest, match="OTP expired"):
        check_otp(record, "123456", now=now + timedelta(minutes=11))
    # Naive timestamps from older records are read as UTC.
    naive = {**record, "expiresAt": record["expiresAt"].replace(tzinfo=None)}
    assert check_otp(naive, "123456", now=now).matched


def test_generated_codes_are_six_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6 and code.isdigit() and code[0] != "0"


def test_attempt_update_is_guarded_by_previous_count(db):
    repo = OtpsRepo(db["otps"])
    now = datetime.now(timezone.utc)
    stored = repo.replace_for(new_otp(email=EMAIL, wallet_address=WALLET, code="111111", now=now, ttl_minutes=10))

    assert repo.record_attempt(stored["_id"], previous_attempts=0, attempts=1, verified=False)
    # A second writer that read attempts=0 loses.
    assert not repo.record_attempt(stored["_id"], previous_attempts=0, attempts=1, verified=False)
    assert db["otps"].find_one({})["attempts"] == 1
