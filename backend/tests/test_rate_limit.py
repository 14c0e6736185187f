from __future__ import annotations

from fastapi.testclient import TestClient

from educhain.container import build_services
from educhain.main import create_app
from educhain.middleware.rate_limit import DEFAULT_RULES, RateRule
from educhain.services.email import EmailSender
from fakes import make_settings


def _client(db, ses, *, enabled: bool) -> TestClient:
    settings = make_settings(rate_limit_enabled=enabled)
    services = build_services(db, settings, email=EmailSender(settings, client=ses))
    return TestClient(create_app(services=services))


def _submit(client, n: int):
    return client.post(
        "/api/applications/submit",
        data={"walletAddress": f"0x{n}", "email": f"s{n}@uni.edu", "poolId": "p", "poolAddress": "0xpool"},
    )


def test_sixth_submission_in_the_window_is_limited(db, ses):
    client = _client(db, ses, enabled=True)
    for n in range(5):
        assert _submit(client, n).status_code == 201

    r = _submit(client, 99)
    assert r.status_code == 429
    body = r.json()
    assert body["error"] == "Too many application submissions. Please try again later."
    assert body["limit"] == "application_submit"
    assert int(r.headers["Retry-After"]) > 0
    assert r.headers["X-Request-Id"]
    assert db["applications"].count_documents({}) == 5


def test_limits_are_tracked_per_client_ip(db, ses):
    client = _client(db, ses, enabled=True)
    for n in range(5):
        _submit(client, n)
    r = client.post(
        "/api/applications/submit",
        headers={"X-Forwarded-For": "203.0.113.7"},
        data={"walletAddress": "0xnew", "email": "new@uni.edu", "poolId": "p", "poolAddress": "0xpool"},
    )
    assert r.status_code == 201


def test_disabled_limiter_lets_everything_through(db, ses):
    client = _client(db, ses, enabled=False)
    for n in range(8):
        assert _submit(client, n).status_code == 201


def test_rule_matching():
    rules = {r.name: r for r in DEFAULT_RULES}
    assert rules["application_submit"].matches("POST", "/api/applications/submit")
    assert not rules["application_submit"].matches("GET", "/api/applications/submit")
    assert not rules["otp_send"].matches("POST", "/api/otp/send/extra")
    assert rules["admin"].matches("GET", "/api/admin/statistics")
    assert not rules["api"].matches("GET", "/health")

    custom = RateRule(name="x", prefix="/api/x", limit=1, window_s=1.0)
    assert custom.matches("DELETE", "/api/x/1")
