from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from educhain.errors import ContentStoreError
from educhain.services.uploads import ONBOARDING_DOCUMENT_MAX_BYTES

STUDENT = {
    "wallet": "0xStudent",
    "fullName": "Ada Lovelace",
    "email": "Ada@Uni.edu",
    "institute": "Analytical U",
    "program": "Mathematics",
    "graduationYear": "2027",
}

PROVIDER = {
    "wallet": "0xProvider",
    "organizationName": "Open Grants",
    "email": "grants@org.io",
    "description": "Funds open research",
    "contactPerson": "Grace",
}


def _register_student(client, files=None, **overrides):
    form = {**STUDENT, **overrides}
    form = {k: v for k, v in form.items() if v is not None}
    return client.post("/api/onboarding/student", data=form, files=files)


def _user(db, wallet="0xstudent"):
    return db["users"].find_one({"walletAddress": wallet})


def test_student_registration(client, db, ses):
    r = _register_student(client)
    assert r.status_code == 201
    body = r.json()
    assert body["message"].startswith("Student registration successful")
    assert body["data"] == {
        "walletAddress": "0xstudent",
        "role": "student",
        "email": "ada@uni.edu",
        "emailVerified": False,
    }

    stored = _user(db)
    assert stored["studentData"]["graduationYear"] == 2027
    assert stored["studentData"]["documentCID"] is None
    assert stored["fullName"] == "Ada Lovelace"
    assert stored["emailNotifications"] is True and stored["weeklyDigest"] is False
    assert f"/verify-account/{stored['verificationToken']}" in ses.last_html()
    assert ses.subjects() == ["Verify Your Email - EduChain Account"]


def test_student_document_is_pinned(client, db):
    r = _register_student(client, files={"document": ("id.png", b"\x89PNG....", "image/png")})
    assert r.status_code == 201
    assert _user(db)["studentData"]["documentCID"].startswith("Qm")


def test_student_document_type_is_checked(client, db):
    r = _register_student(client, files={"document": ("id.exe", b"MZ", "application/octet-stream")})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid file type. Only PDF and images are allowed."
    assert _user(db) is None


def test_student_document_size_is_checked(client, db):
    big = b"0" * (ONBOARDING_DOCUMENT_MAX_BYTES + 1)
    r = _register_student(client, files={"document": ("id.pdf", big, "application/pdf")})
    assert r.status_code == 400
    assert r.json()["error"] == "File too large. Maximum size is 5MB."
    assert _user(db) is None


def test_registration_continues_when_pinning_fails(services, client, db, monkeypatch):
    def _boom(*_a, **_k):
        raise ContentStoreError("Failed to upload to IPFS")

    monkeypatch.setattr(services.content_store, "upload_file", _boom)
    r = _register_student(client, files={"document": ("id.pdf", b"%PDF", "application/pdf")})
    assert r.status_code == 201
    assert _user(db)["studentData"]["documentCID"] is None


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"institute": None}, "All required fields must be provided"),
        ({"fullName": "   "}, "All required fields must be provided"),
        ({"graduationYear": "soon"}, "Graduation year must be a number"),
    ],
)
def test_student_validation(client, overrides, error):
    r = _register_student(client, **overrides)
    assert r.status_code == 400
    assert r.json()["error"] == error


def test_duplicate_wallet_and_email(client):
    assert _register_student(client).status_code == 201

    r = _register_student(client, email="other@uni.edu", wallet="0xSTUDENT")
    assert r.json()["error"] == "User with this wallet address already exists"

    r = _register_student(client, wallet="0xnew", email="ADA@uni.edu")
    assert r.json()["error"] == "This email is already registered"


def test_provider_registration(client, db):
    r = client.post("/api/onboarding/provider", data={**PROVIDER, "website": "https://org.io"})
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["role"] == "provider"
    assert data["providerVerified"] is False

    stored = _user(db, "0xprovider")
    assert stored["providerData"]["website"] == "https://org.io"
    assert stored["organizationName"] == "Open Grants"

    r = client.post("/api/onboarding/provider", data={**PROVIDER, "wallet": "0xnew", "email": "x@org.io", "description": ""})
    assert r.status_code == 400
    assert r.json()["error"] == "All required fields must be provided"


def test_account_verification(client, db):
    _register_student(client)
    token = _user(db)["verificationToken"]

    r = client.get(f"/api/onboarding/verify/{token}")
    assert r.status_code == 200
    assert r.json()["data"] == {"walletAddress": "0xstudent", "role": "student", "emailVerified": True}

    stored = _user(db)
    assert stored["emailVerified"] is True
    assert "verificationToken" not in stored and "verificationTokenExpiry" not in stored

    r = client.get(f"/api/onboarding/verify/{token}")
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid or expired verification token"


def test_expired_account_token_is_rejected(client, db):
    _register_student(client)
    token = _user(db)["verificationToken"]
    db["users"].update_one(
        {}, {"$set": {"verificationTokenExpiry": datetime.now(timezone.utc) - timedelta(minutes=1)}}
    )
    r = client.get(f"/api/onboarding/verify/{token}")
    assert r.status_code == 400


def test_resend_account_verification(client, db, ses):
    r = client.post("/api/onboarding/resend-verification", json={})
    assert r.json()["error"] == "Email is required"
    r = client.post("/api/onboarding/resend-verification", json={"email": "nobody@uni.edu"})
    assert r.status_code == 404
    assert r.json()["error"] == "User not found"

    _register_student(client)
    old = _user(db)["verificationToken"]
    r = client.post("/api/onboarding/resend-verification", json={"email": "ADA@uni.edu"})
    assert r.status_code == 200
    new = _user(db)["verificationToken"]
    assert new != old
    assert new in ses.last_html()

    ses.fail = True
    r = client.post("/api/onboarding/resend-verification", json={"email": "ada@uni.edu"})
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to resend verification email"

    # The failed resend still rotated the token.
    client.get(f"/api/onboarding/verify/{_user(db)['verificationToken']}")
    r = client.post("/api/onboarding/resend-verification", json={"email": "ada@uni.edu"})
    assert r.status_code == 400
    assert r.json()["error"] == "Email is already verified"


def test_onboarding_profile_hides_token(client):
    assert client.get("/api/onboarding/profile/0xstudent").status_code == 404
    _register_student(client)
    r = client.get("/api/onboarding/profile/0xSTUDENT")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["studentData"]["program"] == "Mathematics"
    assert "verificationToken" not in data
    assert "verificationTokenExpiry" not in data


def test_user_profile_and_update(client, db):
    r = client.get("/api/user/profile/0xstudent")
    assert r.status_code == 404
    assert r.json()["error"] == "User not found. Please complete onboarding first."

    _register_student(client)
    client.get(f"/api/onboarding/verify/{_user(db)['verificationToken']}")

    r = client.get("/api/user/profile/0xstudent")
    profile = r.json()["data"]
    assert profile["wallet"] == "0xstudent"
    assert profile["emailVerified"] is True

    r = client.put("/api/user/profile/0xstudent", json={"institution": "Babbage College"})
    data = r.json()["data"]
    assert r.json()["message"] == "Profile updated successfully"
    assert data["institution"] == "Babbage College"
    assert data["fullName"] == "Ada Lovelace"
    assert data["emailVerified"] is True

    r = client.put("/api/user/profile/0xstudent", json={"email": "New@Uni.edu"})
    data = r.json()["data"]
    assert data["email"] == "new@uni.edu"
    assert data["emailVerified"] is False


def test_profile_email_must_be_unused(client):
    _register_student(client)
    client.post("/api/onboarding/provider", data=PROVIDER)

    r = client.put("/api/user/profile/0xstudent", json={"email": "grants@org.io"})
    assert r.status_code == 400
    assert r.json()["error"] == "This email is already registered"


def test_preferences(client):
    assert client.get("/api/user/preferences/0xstudent").status_code == 404
    _register_student(client)

    r = client.get("/api/user/preferences/0xstudent")
    assert r.json()["data"] == {"emailNotifications": True, "applicationUpdates": True, "weeklyDigest": False}

    r = client.put("/api/user/preferences/0xstudent", json={"weeklyDigest": True, "emailNotifications": False})
    assert r.json()["data"] == {"emailNotifications": False, "applicationUpdates": True, "weeklyDigest": True}


def test_auth_check(client):
    r = client.get("/api/auth/check/0xstudent")
    assert r.status_code == 404
    body = r.json()
    assert body["success"] is False
    assert body["registered"] is False

    _register_student(client)
    r = client.get("/api/auth/check/0xSTUDENT")
    body = r.json()
    assert body["registered"] is True
    assert body["data"]["role"] == "student"


def test_login_records_last_login(client, db):
    r = client.post("/api/auth/login", json={})
    assert r.status_code == 400
    assert r.json()["error"] == "Wallet address is required"

    r = client.post("/api/auth/login", json={"walletAddress": "0xstudent"})
    assert r.status_code == 404
    assert r.json()["registered"] is False

    _register_student(client)
    r = client.post("/api/auth/login", json={"walletAddress": "0xStudent"})
    assert r.status_code == 200
    assert r.json()["message"] == "Login successful"
    assert _user(db)["lastLogin"] is not None
