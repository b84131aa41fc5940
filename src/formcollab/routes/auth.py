from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from formcollab.auth import current_user
from formcollab.errors import BackendError
from formcollab.views import DASHBOARD_PATH, logout

router = APIRouter()


@router.get("/login", response_class=HTMLResponse, tags=["auth"])
async def login_page(request: Request) -> HTMLResponse:
    if current_user(request):
        return RedirectResponse(DASHBOARD_PATH, status_code=303)
    templates = request.app.state.templates
    return templates.TemplateResponse(request, "login.html", {"email": "", "error": None})


@router.post("/login", response_class=HTMLResponse, tags=["auth"])
async def login(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    auth = request.app.state.auth_provider
    form_data = await request.form()
    email = str(form_data.get("email", "")).strip()
    password = str(form_data.get("password", ""))
    try:
        user = auth.sign_in(request, email, password)
        error = None if user else "Invalid email or password"
    except BackendError as exc:
        error = str(exc)
    if error:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"email": email, "error": error},
            status_code=400,
        )
    return RedirectResponse(DASHBOARD_PATH, status_code=303)


@router.post("/logout", tags=["auth"])
async def logout_route(request: Request) -> RedirectResponse:
    location = logout(request.app.state.auth_provider, request)
    return RedirectResponse(location or DASHBOARD_PATH, status_code=303)
