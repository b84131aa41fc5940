from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from formcollab.auth import current_user, require_user
from formcollab.views import DASHBOARD_PATH, Dashboard, FormFill

router = APIRouter()


def render_fill(
    request: Request, fill: FormFill, user: dict[str, Any] | None, status_code: int = 200
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "form_fill.html",
        {
            "user": user,
            "form": fill.form,
            "fields": fill.form["fields"] if fill.form else [],
            "answers": fill.answers,
            "error": fill.error,
        },
        status_code=status_code,
    )


@router.get("/", tags=["public"])
async def home() -> RedirectResponse:
    return RedirectResponse(DASHBOARD_PATH)


@router.get("/dashboard", response_class=HTMLResponse, tags=["public"])
async def user_dashboard(request: Request, user: Any = Depends(require_user)) -> HTMLResponse:
    templates = request.app.state.templates
    dashboard = Dashboard(request.app.state.storage)
    dashboard.load()
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"user": user, "forms": dashboard.forms},
    )


@router.get("/forms/{form_id}", response_class=HTMLResponse, tags=["public"])
async def fill_form(
    request: Request, form_id: str, user: Any = Depends(require_user)
) -> HTMLResponse:
    fill = FormFill(request.app.state.storage, form_id)
    if not fill.load():
        raise HTTPException(status_code=404, detail="Form not found")
    return render_fill(request, fill, user)


@router.post("/forms/{form_id}", response_class=HTMLResponse, tags=["public"])
async def submit_form(request: Request, form_id: str) -> HTMLResponse:
    fill = FormFill(request.app.state.storage, form_id)
    if not fill.load():
        raise HTTPException(status_code=404, detail="Form not found")
    fill.update_answers(await request.form())
    user = current_user(request)
    location = fill.submit(user)
    if location is None:
        return render_fill(request, fill, user, status_code=400)
    return RedirectResponse(location, status_code=303)
