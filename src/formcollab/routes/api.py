from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from formcollab.auth import current_user
from formcollab.errors import BackendError
from formcollab.utils import dumps_json, to_iso
from formcollab.views import Dashboard, load_form

router = APIRouter()


def api_user(request: Request) -> dict[str, Any]:
    user = current_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def json_response(payload: Any) -> Response:
    # orjson は NaN を null として出力する
    return Response(content=dumps_json(payload), media_type="application/json")


def sanitize_form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "title": form.get("title", ""),
        "fields": form.get("fields", []),
        "created_at": to_iso(form["created_at"]),
        "created_by": form.get("created_by"),
    }


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/forms", tags=["api/forms"])
async def api_list_forms(request: Request, _: Any = Depends(api_user)) -> Response:
    dashboard = Dashboard(request.app.state.storage)
    if not dashboard.load():
        raise HTTPException(status_code=502, detail="Failed to fetch forms")
    return json_response([sanitize_form_output(form) for form in dashboard.forms])


@router.get("/api/forms/{form_id}", tags=["api/forms"])
async def api_get_form(request: Request, form_id: str, _: Any = Depends(api_user)) -> Response:
    storage = request.app.state.storage
    try:
        form = load_form(storage, form_id)
    except BackendError as exc:
        raise HTTPException(status_code=404, detail="Form not found") from exc
    return json_response(sanitize_form_output(form))


@router.get("/api/forms/{form_id}/submissions", tags=["api/forms"])
async def api_list_submissions(
    request: Request, form_id: str, _: Any = Depends(api_user)
) -> Response:
    storage = request.app.state.storage
    try:
        submissions = storage.submissions.list_submissions(form_id)
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return json_response(
        [
            {
                "id": item["id"],
                "form_id": item["form_id"],
                "user_id": item["user_id"],
                "data": item["data"],
                "created_at": to_iso(item["created_at"]),
            }
            for item in submissions
        ]
    )
