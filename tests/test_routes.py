from __future__ import annotations

from datetime import timedelta

from formcollab.errors import BackendError
from formcollab.views import DASHBOARD_PATH, FormEditor
from tests.conftest import PASSWORD, make_form


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_pages_redirect_to_login_without_session(client, web_form):
    for path in ("/dashboard", "/admin/dashboard", f"/admin/forms/{web_form['id']}", f"/forms/{web_form['id']}"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"


def test_login_with_bad_password(client, user):
    response = client.post("/login", data={"email": user["email"], "password": "nope"})
    assert response.status_code == 400
    assert "Invalid email or password" in response.text


def test_login_then_logout(auth_client):
    assert auth_client.get("/dashboard").status_code == 200

    response = auth_client.post("/logout", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"

    response = auth_client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303


def test_dashboard_lists_forms_newest_first(auth_client, app_storage, web_form, base_time):
    make_form(app_storage, "form-2", "Newest", base_time)

    body = auth_client.get("/dashboard").text

    assert body.index("Newest") < body.index("Profile")
    assert 'href="/forms/form-2"' in body
    assert "Created at: 2024-" in body


def test_admin_dashboard_links_to_editor(auth_client, web_form):
    body = auth_client.get("/admin/dashboard").text
    assert f'href="/admin/forms/{web_form["id"]}"' in body


def test_editor_add_and_remove_field(auth_client, app_storage, web_form):
    form_id = web_form["id"]
    response = auth_client.post(
        f"/admin/forms/{form_id}/fields",
        data={"type": "select", "label": "Size", "required": "true"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == f"/admin/forms/{form_id}"

    fields = app_storage.forms.get_form(form_id)["fields"]
    added = fields[-1]
    assert added["label"] == "Size"
    assert added["options"] == []
    assert added["required"] is True

    page = auth_client.get(f"/admin/forms/{form_id}").text
    assert "Size" in page

    auth_client.post(f"/admin/forms/{form_id}/fields/{added['id']}/delete")
    remaining = app_storage.forms.get_form(form_id)["fields"]
    assert [f["id"] for f in remaining] == [f["id"] for f in web_form["fields"]]


def test_editor_rejects_blank_label(auth_client, app_storage, web_form):
    response = auth_client.post(
        f"/admin/forms/{web_form['id']}/fields",
        data={"type": "text", "label": "  "},
    )
    assert response.status_code == 400
    assert "Label is required" in response.text
    assert len(app_storage.forms.get_form(web_form["id"])["fields"]) == len(web_form["fields"])


def test_editor_sets_select_options(auth_client, app_storage, web_form):
    auth_client.post(
        f"/admin/forms/{web_form['id']}/fields/color/options",
        data={"options": "green\nyellow\n\ngreen"},
    )
    editor = FormEditor(app_storage, web_form["id"])
    editor.load()
    color = next(f for f in editor.fields if f["id"] == "color")
    assert color["options"] == ["green", "yellow"]


def test_editor_unknown_form_is_404(auth_client):
    assert auth_client.get("/admin/forms/missing").status_code == 404


def test_fill_renders_each_field_type(auth_client, web_form):
    body = auth_client.get(f"/forms/{web_form['id']}").text
    assert 'type="checkbox" id="agree"' in body
    assert 'type="text" id="name"' in body
    assert 'textarea id="bio" name="bio" rows="4"' in body
    assert 'type="number" step="any" id="age"' in body
    assert '<option value="">Select an option</option>' in body
    assert '<option value="red">red</option>' in body


def test_submit_form_records_answers(auth_client, app_storage, user, web_form):
    response = auth_client.post(
        f"/forms/{web_form['id']}",
        data={"agree": "true", "name": "Ada", "bio": "hi", "age": "36", "color": "blue"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"

    rows = app_storage.submissions.list_submissions(web_form["id"])
    assert len(rows) == 1
    assert rows[0]["user_id"] == user["id"]
    assert rows[0]["data"] == {"agree": True, "name": "Ada", "bio": "hi", "age": 36.0, "color": "blue"}


def test_submit_without_session_shows_error(client, app_storage, web_form):
    response = client.post(f"/forms/{web_form['id']}", data={"name": "Ada"})

    assert response.status_code == 400
    assert "Not authenticated" in response.text
    assert 'value="Ada"' in response.text
    assert app_storage.submissions.list_submissions(web_form["id"]) == []


def test_api_requires_session(client, web_form):
    assert client.get("/api/forms").status_code == 401


def test_api_lists_and_reads_forms(auth_client, app_storage, web_form, base_time):
    make_form(app_storage, "form-0", "Older", base_time - timedelta(days=5))

    listing = auth_client.get("/api/forms").json()
    assert [item["id"] for item in listing] == [web_form["id"], "form-0"]

    detail = auth_client.get(f"/api/forms/{web_form['id']}").json()
    assert [f["type"] for f in detail["fields"]] == ["checkbox", "text", "textarea", "number", "select"]
    assert auth_client.get("/api/forms/missing").status_code == 404


def test_api_lists_submissions(auth_client, web_form):
    auth_client.post(f"/forms/{web_form['id']}", data={"name": "Ada", "age": ""})
    rows = auth_client.get(f"/api/forms/{web_form['id']}/submissions").json()
    assert len(rows) == 1
    assert rows[0]["data"]["age"] is None
    assert rows[0]["data"]["agree"] is False


def test_login_page_redirects_when_signed_in(auth_client):
    response = auth_client.get("/login", follow_redirects=False)
    assert response.status_code == 303


def test_login_is_case_insensitive(client, user):
    response = client.post(
        "/login",
        data={"email": "ALICE@example.com", "password": PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303


def test_editor_backend_failure_redirects_without_message(auth_client, app_storage, web_form, monkeypatch):
    def locked(form_id, fields):
        raise BackendError("database is locked")

    monkeypatch.setattr(app_storage.forms, "update_fields", locked)

    response = auth_client.post(
        f"/admin/forms/{web_form['id']}/fields",
        data={"type": "text", "label": "Nickname"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == f"/admin/forms/{web_form['id']}"

    page = auth_client.get(f"/admin/forms/{web_form['id']}").text
    assert "database is locked" not in page
    assert "Nickname" not in page


def test_logout_failure_falls_back_to_dashboard(auth_client, app, monkeypatch):
    def broken_sign_out(request):
        raise RuntimeError("session store unavailable")

    monkeypatch.setattr(app.state.auth_provider, "sign_out", broken_sign_out)

    response = auth_client.post("/logout", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == DASHBOARD_PATH
