from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from educhain.container import build_services
from educhain.main import create_app
from educhain.services.email import EmailSender
from educhain.settings import Settings
from fakes import FakeDatabase, FakeSesClient, make_settings


def test_environment_aliases():
    assert make_settings(environment="prod").is_production
    assert make_settings(environment="Development").is_development
    assert not make_settings(environment="test").is_development


def test_settings_read_environment_variables(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "staging")
    monkeypatch.setenv("MONGO_DB_NAME", "educhain_stage")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    s = Settings()
    assert s.normalized_environment == "staging"
    assert s.mongo_db_name == "educhain_stage"
    assert s.rate_limit_enabled is False


def test_production_requires_email_and_pinata():
    with pytest.raises(RuntimeError) as exc:
        make_settings(environment="production", email_from=None).require_in_production()
    assert "EMAIL_FROM" in str(exc.value)
    assert "PINATA_API_KEY" in str(exc.value)

    make_settings(
        environment="production", pinata_api_key="k", pinata_api_secret="s"
    ).require_in_production()
    make_settings(email_from=None).require_in_production()


def test_log_safe_dict_hides_secrets():
    s = make_settings(pinata_api_key="k", pinata_api_secret="very-secret", mongo_uri="mongodb://u:p@host")
    dumped = repr(s.to_log_safe_dict())
    assert "very-secret" not in dumped
    assert "u:p@host" not in dumped


def _client(settings) -> TestClient:
    ses = FakeSesClient()
    return TestClient(create_app(services=build_services(FakeDatabase(), settings, email=EmailSender(settings, client=ses))))


def test_debug_routes_follow_environment():
    prod = make_settings(environment="production", debug_routes_enabled=None)
    assert _client(prod).get("/api/debug/email-config").status_code == 404

    dev = make_settings(environment="development", debug_routes_enabled=None)
    r = _client(dev).get("/api/debug/email-config")
    assert r.status_code == 200
    assert r.json()["data"]["configured"]["EMAIL_FROM"] is True


def test_debug_test_email(client, ses):
    r = client.post("/api/debug/test-email", json={"email": "me@uni.edu"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["otp"] == "123456"
    assert data["delivered"] is True
    assert ses.recipients() == ["me@uni.edu"]

    r = client.post("/api/debug/test-email", json={})
    assert r.status_code == 400
    assert r.json()["error"] == "Email is required"
