from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from formcollab.auth import require_user
from formcollab.errors import FieldDefinitionError
from formcollab.fields import parse_bool
from formcollab.views import Dashboard, FormEditor

router = APIRouter()


def load_editor(request: Request, form_id: str) -> FormEditor:
    editor = FormEditor(request.app.state.storage, form_id)
    if not editor.load():
        raise HTTPException(status_code=404, detail="Form not found")
    return editor


def render_editor(
    request: Request, editor: FormEditor, user: dict[str, Any], status_code: int = 200
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "admin_form_editor.html",
        {
            "user": user,
            "form": editor.form,
            "fields": editor.fields,
            "draft": editor.draft,
            "error": editor.error,
        },
        status_code=status_code,
    )


def editor_location(form_id: str) -> str:
    return f"/admin/forms/{form_id}"


@router.get("/admin/dashboard", response_class=HTMLResponse, tags=["admin"])
async def admin_dashboard(request: Request, user: Any = Depends(require_user)) -> HTMLResponse:
    templates = request.app.state.templates
    dashboard = Dashboard(request.app.state.storage)
    dashboard.load()
    return templates.TemplateResponse(
        request,
        "admin_dashboard.html",
        {"user": user, "forms": dashboard.forms},
    )


@router.get("/admin/forms/{form_id}", response_class=HTMLResponse, tags=["admin"])
async def edit_form(
    request: Request, form_id: str, user: Any = Depends(require_user)
) -> HTMLResponse:
    editor = load_editor(request, form_id)
    return render_editor(request, editor, user)


@router.post("/admin/forms/{form_id}/fields", response_class=HTMLResponse, tags=["admin"])
async def add_field(
    request: Request, form_id: str, user: Any = Depends(require_user)
) -> HTMLResponse:
    editor = load_editor(request, form_id)
    form_data = await request.form()
    draft = {
        "type": str(form_data.get("type", "text")),
        "label": str(form_data.get("label", "")),
        "required": parse_bool(form_data.get("required")),
    }
    try:
        editor.add_field(draft)
    except FieldDefinitionError as exc:
        editor.error = str(exc)
        return render_editor(request, editor, user, status_code=400)
    return RedirectResponse(editor_location(form_id), status_code=303)


@router.post("/admin/forms/{form_id}/fields/{field_id}/delete", tags=["admin"])
async def remove_field(
    request: Request, form_id: str, field_id: str, _: Any = Depends(require_user)
) -> RedirectResponse:
    editor = load_editor(request, form_id)
    editor.remove_field(field_id)
    return RedirectResponse(editor_location(form_id), status_code=303)


@router.post("/admin/forms/{form_id}/fields/{field_id}/options", tags=["admin"])
async def set_options(
    request: Request, form_id: str, field_id: str, _: Any = Depends(require_user)
) -> RedirectResponse:
    editor = load_editor(request, form_id)
    form_data = await request.form()
    raw = str(form_data.get("options", ""))
    editor.set_options(field_id, raw.splitlines())
    return RedirectResponse(editor_location(form_id), status_code=303)
