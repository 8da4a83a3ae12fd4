"""Pytest configuration and fixtures."""

import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
import database
import uploads
from mailer import MailResult
from main import app


class RecordingNotifier:
    """Stands in for the mail gateway and remembers every reset link."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    def send_password_reset(self, email, reset_url):
        self.sent.append((email, reset_url))
        if self.succeed:
            return MailResult(success=True, message="sent")
        return MailResult(success=False, message="Failed to send password reset email")

    @property
    def last_token(self):
        return self.sent[-1][1].rsplit("/", 1)[-1]


@pytest.fixture
def db():
    """Fresh in-memory store with the production indexes."""
    store = mongomock.MongoClient().db
    database.ensure_indexes(store)
    return store


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def client(db, notifier, upload_dir):
    """Create test client wired to the in-memory store."""
    app.dependency_overrides[database.get_db] = lambda: db
    app.dependency_overrides[auth.get_notifier] = lambda: notifier
    app.dependency_overrides[uploads.get_upload_dir] = lambda: upload_dir
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/auth/register", json={
        "email": "owner@mivent.io",
        "password": "s3cret-pass",
        "name": "Studio Owner",
    })
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
