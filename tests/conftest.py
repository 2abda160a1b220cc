"""
Test fixtures for the tuition portal.

Provides app, client, admin_client, tutee_client and db fixtures with
file-based SQLite. pywebpush and the OpenAI client are mocked so no network
calls are made.
"""

from __future__ import annotations

import pytest
from unittest.mock import MagicMock, patch

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

ADMIN_PIN = "87654321"
TUTEE_ID = "primary-school"
TUTEE_PIN = "1234"
OTHER_TUTEE_ID = "secondary-school"
OTHER_TUTEE_PIN = "5678"


@pytest.fixture(autouse=True)
def webpush_mock():
    """Mock pywebpush.webpush as imported by push.py."""
    with patch("push.webpush") as mock:
        yield mock


@pytest.fixture
def openai_client():
    """Mock OpenAI client instance returned by ai_client.OpenAI()."""
    with patch("ai_client.OpenAI") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture
def make_completion():
    """Factory for chat completion objects shaped like the OpenAI SDK's."""
    def _make(content: str, model: str = "gpt-4o-mini"):
        completion = MagicMock()
        completion.choices = [MagicMock(message=MagicMock(content=content))]
        completion.model = model
        completion.usage.model_dump.return_value = {
            "prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20,
        }
        return completion
    return _make


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite and two seeded tutees."""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "DATABASE": str(tmp_path / "test.db"),
        "SECRET_KEY": "test-secret-key",
        "ADMIN_PIN": ADMIN_PIN,
        "STORAGE_DIR": str(tmp_path / "storage"),
        "OPENAI_API_KEY": "sk-test",
        "VAPID_PRIVATE_KEY": "test-private-key",
        "VAPID_PUBLIC_KEY": "test-public-key",
        "VAPID_CLAIMS_EMAIL": "mailto:test@example.com",
    })

    with app.app_context():
        from database import init_db, run_migrations
        from db_stores import TuteeStoreDB

        init_db()
        run_migrations()
        TuteeStoreDB.create(TUTEE_ID, "Primary School", TUTEE_PIN, description="Year 5 maths")
        TuteeStoreDB.create(OTHER_TUTEE_ID, "Secondary School", OTHER_TUTEE_PIN,
                            icon="GraduationCap", color_primary="blue",
                            color_secondary="indigo", color_gradient="from-blue-500 to-indigo-600")

    yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def admin_client(app):
    """Test client signed in with the admin PIN."""
    client = app.test_client()
    resp = client.post("/api/auth/admin", json={"pin": ADMIN_PIN})
    assert resp.status_code == 200
    return client


@pytest.fixture
def tutee_client(app):
    """Test client signed in as the primary-school tutee."""
    client = app.test_client()
    resp = client.post("/api/auth/tutee", json={"tuteeId": TUTEE_ID, "pin": TUTEE_PIN})
    assert resp.status_code == 200
    return client


@pytest.fixture
def other_tutee_client(app):
    """Test client signed in as the secondary-school tutee."""
    client = app.test_client()
    resp = client.post("/api/auth/tutee", json={"tuteeId": OTHER_TUTEE_ID, "pin": OTHER_TUTEE_PIN})
    assert resp.status_code == 200
    return client


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()
