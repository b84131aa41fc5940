from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from formcollab.auth import SessionAuthProvider
from formcollab.config import BASE_DIR, FIELD_TYPES, Settings
from formcollab.fields import rule_for
from formcollab.routes.admin import router as admin_router
from formcollab.routes.api import router as api_router
from formcollab.routes.auth import router as auth_router
from formcollab.routes.public import router as public_router
from formcollab.storage import init_storage

logger = logging.getLogger(__name__)

FIELD_TYPE_LABELS = {
    "text": "Text",
    "textarea": "Text Area",
    "number": "Number",
    "select": "Select",
    "checkbox": "Checkbox",
}


def field_macro(field: dict[str, Any]) -> str:
    return rule_for(field).macro


def format_dt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.astimezone().strftime("%Y-%m-%d %H:%M")
    return str(value or "")


def format_date(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone().strftime("%Y-%m-%d")
    return str(value or "")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    storage = init_storage(settings)
    auth = SessionAuthProvider(storage)

    app = FastAPI(
        title="formcollab",
        openapi_tags=[
            {"name": "admin", "description": "Form editor (HTML)"},
            {"name": "public", "description": "Dashboard and form fill (HTML)"},
            {"name": "auth", "description": "Login / logout"},
            {"name": "api/forms", "description": "REST API: forms"},
            {"name": "system", "description": "System"},
        ],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        same_site="lax",
    )

    app.state.storage = storage
    app.state.settings = settings
    app.state.auth_provider = auth

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    app.state.templates = templates

    templates.env.globals["field_macro"] = field_macro
    templates.env.globals["field_types"] = FIELD_TYPES
    templates.env.globals["field_type_labels"] = FIELD_TYPE_LABELS
    templates.env.globals["format_dt"] = format_dt
    templates.env.globals["format_date"] = format_date

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(public_router)
    app.include_router(api_router)

    logger.info("formcollab app created (storage=%s)", settings.storage_backend)
    return app
