from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from formcollab.app import create_app
from formcollab.auth import create_user
from formcollab.config import Settings
from formcollab.repo_json import JSONStorage
from formcollab.repo_sqlite import SQLiteStorage

PASSWORD = "correct horse"

SAMPLE_FIELDS: list[dict[str, Any]] = [
    {"id": "a", "type": "checkbox", "label": "Agree", "required": False},
    {"id": "b", "type": "text", "label": "Name", "required": True},
]


def make_form(storage: Any, form_id: str, title: str, created_at: datetime, fields=None) -> dict[str, Any]:
    form = {
        "id": form_id,
        "title": title,
        "fields": fields if fields is not None else [],
        "created_at": created_at,
        "created_by": "u1",
    }
    storage.forms.create_form(form)
    return form


@pytest.fixture(params=["sqlite", "json"])
def any_storage(request, tmp_path):
    if request.param == "json":
        return JSONStorage(tmp_path / "store.json")
    return SQLiteStorage(tmp_path / "app.db")


@pytest.fixture
def storage(tmp_path):
    return SQLiteStorage(tmp_path / "app.db")


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_form(storage, base_time):
    return make_form(storage, "f1", "Survey", base_time, fields=[dict(f) for f in SAMPLE_FIELDS])


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "web" / "app.db"))
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def app_storage(app):
    return app.state.storage


@pytest.fixture
def user(app_storage) -> dict[str, Any]:
    return create_user(app_storage, "alice@example.com", PASSWORD)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(client, user):
    response = client.post(
        "/login",
        data={"email": user["email"], "password": PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client


@pytest.fixture
def web_form(app_storage, user, base_time):
    fields = [
        {"id": "agree", "type": "checkbox", "label": "Agree", "required": False},
        {"id": "name", "type": "text", "label": "Name", "required": True},
        {"id": "bio", "type": "textarea", "label": "Bio", "required": False},
        {"id": "age", "type": "number", "label": "Age", "required": False},
        {"id": "color", "type": "select", "label": "Color", "required": False, "options": ["red", "blue"]},
    ]
    return make_form(app_storage, "form-1", "Profile", base_time - timedelta(days=1), fields=fields)
