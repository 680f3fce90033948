import os
import tempfile

# Settings are read at import time by main.py; point them somewhere disposable first.
_BOOT_DIR = tempfile.mkdtemp(prefix="pixshare-tests-")
os.environ["DATABASE_PATH"] = os.path.join(_BOOT_DIR, "boot.sqlite3")
os.environ["UPLOAD_FOLDER"] = os.path.join(_BOOT_DIR, "uploads")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("BOOTSTRAP_ADMIN_EMAIL", None)
os.environ.pop("BOOTSTRAP_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from config import get_settings

get_settings.cache_clear()

from auth import ensure_admin
from database import init_db
from main import app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "test.sqlite3"))
    monkeypatch.setenv("UPLOAD_FOLDER", str(tmp_path / "uploads"))
    get_settings.cache_clear()
    init_db()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def client():
    return TestClient(app)


def login(client, email, password):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    body = r.json()
    return {
        "id": body["id"],
        "email": body["email"],
        "role": body["role"],
        "token": body["access_token"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


@pytest.fixture
def make_user(client):
    def _make(email, password="secret-pass"):
        r = client.post("/auth/register", json={"email": email, "password": password})
        assert r.status_code == 201, r.text
        return login(client, email, password)
    return _make


@pytest.fixture
def admin(client):
    ensure_admin("admin@example.com", "admin-pass")
    return login(client, "admin@example.com", "admin-pass")


@pytest.fixture
def upload(client):
    def _upload(user, content_type="image/png", filename="photo.png", caption=None, content=PNG_BYTES):
        data = {"caption": caption} if caption is not None else {}
        return client.post(
            "/content/upload",
            files={"media": (filename, content, content_type)},
            data=data,
            headers=user["headers"],
        )
    return _upload


@pytest.fixture
def approved_post(client, upload, admin):
    """Upload as the given user and have the admin approve it; returns the post id."""
    def _post(user, caption=None):
        r = upload(user, caption=caption)
        assert r.status_code == 201, r.text
        post_id = r.json()["id"]
        r = client.put(f"/content/{post_id}/moderate", json={"status": "approved"}, headers=admin["headers"])
        assert r.status_code == 200, r.text
        return post_id
    return _post
