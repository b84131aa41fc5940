from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from fastapi import Request

from formcollab.auth import LOGIN_PATH, AuthProvider
from formcollab.errors import BackendError, FieldDefinitionError, NotAuthenticatedError
from formcollab.fields import (
    DEFAULT_DRAFT,
    build_field,
    initial_answers,
    normalize_options,
    parse_answers,
    parse_fields,
)
from formcollab.storage import Storage
from formcollab.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"


def logout(auth: AuthProvider, request: Request) -> str | None:
    try:
        auth.sign_out(request)
    except Exception:
        logger.exception("Error logging out")
        return None
    return LOGIN_PATH


def load_form(storage: Storage, form_id: str) -> dict[str, Any]:
    form = storage.forms.get_form(form_id)
    if form is None:
        raise BackendError(f"Form not found: {form_id}")
    try:
        fields = parse_fields(form.get("fields"))
    except FieldDefinitionError as exc:
        raise BackendError(f"Form {form_id} has invalid fields: {exc}") from exc
    return {**form, "fields": fields}


class FormEditor:
    def __init__(self, storage: Storage, form_id: str) -> None:
        self.storage = storage
        self.form_id = form_id
        self.form: dict[str, Any] | None = None
        self.draft: dict[str, Any] = dict(DEFAULT_DRAFT)
        self.error: str | None = None

    def load(self) -> bool:
        try:
            self.form = load_form(self.storage, self.form_id)
        except BackendError:
            logger.exception("Error fetching form %s", self.form_id)
            return False
        return True

    @property
    def fields(self) -> list[dict[str, Any]]:
        if self.form is None:
            return []
        return self.form["fields"]

    def _persist(self, fields: list[dict[str, Any]], action: str) -> bool:
        if self.form is None:
            return False
        try:
            self.storage.forms.update_fields(self.form["id"], fields)
        except BackendError:
            logger.exception("Error %s on form %s", action, self.form["id"])
            return False
        self.form = {**self.form, "fields": fields}
        return True

    def add_field(self, draft: Mapping[str, Any]) -> bool:
        if self.form is None:
            return False
        self.draft = {**DEFAULT_DRAFT, **draft}
        field = build_field(self.draft, self.fields)
        if not self._persist([*self.fields, field], "adding field"):
            return False
        self.draft = dict(DEFAULT_DRAFT)
        self.error = None
        return True

    def remove_field(self, field_id: str) -> bool:
        if self.form is None:
            return False
        remaining = [field for field in self.fields if field["id"] != field_id]
        return self._persist(remaining, "removing field")

    def set_options(self, field_id: str, options: Iterable[Any]) -> bool:
        if self.form is None:
            return False
        cleaned = normalize_options(options)
        updated: list[dict[str, Any]] = []
        for field in self.fields:
            if field["id"] == field_id and field["type"] == "select":
                field = {**field, "options": cleaned}
            updated.append(field)
        return self._persist(updated, "updating options")


class Dashboard:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self.forms: list[dict[str, Any]] = []

    def load(self) -> bool:
        try:
            self.forms = self.storage.forms.list_forms()
        except BackendError:
            logger.exception("Error fetching forms")
            return False
        return True


class FormFill:
    def __init__(self, storage: Storage, form_id: str) -> None:
        self.storage = storage
        self.form_id = form_id
        self.form: dict[str, Any] | None = None
        self.answers: dict[str, Any] = {}
        self.error: str | None = None

    def load(self) -> bool:
        try:
            self.form = load_form(self.storage, self.form_id)
        except BackendError:
            logger.exception("Error fetching form %s", self.form_id)
            return False
        self.answers = initial_answers(self.form["fields"])
        return True

    def update_answers(self, form_data: Mapping[str, Any]) -> None:
        if self.form is None:
            return
        self.answers.update(parse_answers(self.form["fields"], form_data))

    def submit(self, principal: Mapping[str, Any] | None) -> str | None:
        """Insert one submission for ``principal`` and return the next location.

        On failure ``error`` holds the message to show above the form and the
        answers are left as the user entered them.
        """
        try:
            if principal is None:
                raise NotAuthenticatedError()
            if self.form is None:
                raise BackendError(f"Form not loaded: {self.form_id}")
            self.storage.submissions.create_submission(
                {
                    "id": new_ulid(),
                    "form_id": self.form["id"],
                    "user_id": principal["id"],
                    "data": dict(self.answers),
                    "created_at": now_utc(),
                }
            )
        except (NotAuthenticatedError, BackendError) as exc:
            logger.warning("Submission to form %s failed: %s", self.form_id, exc)
            self.error = str(exc)
            return None
        self.error = None
        return DASHBOARD_PATH
