from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure `backend/` is on sys.path so `import educhain.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from educhain.container import build_services  # noqa: E402
from educhain.db.mongo import ensure_indexes  # noqa: E402
from educhain.main import create_app  # noqa: E402
from educhain.services.email import EmailSender  # noqa: E402
from educhain.settings import Settings  # noqa: E402
from fakes import FakeDatabase, FakeSesClient, make_settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def db() -> FakeDatabase:
    d = FakeDatabase()
    ensure_indexes(d)
    return d


@pytest.fixture
def ses() -> FakeSesClient:
    return FakeSesClient()


@pytest.fixture
def services(db, settings, ses):
    return build_services(db, settings, email=EmailSender(settings, client=ses))


@pytest.fixture
def client(services) -> TestClient:
    return TestClient(create_app(services=services))
