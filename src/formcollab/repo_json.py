from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock
from tinydb import Query, TinyDB

from formcollab.storage import backend_call
from formcollab.utils import parse_dt, to_iso


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterator[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()


class JSONFormRepo(JSONRepoBase):
    @backend_call
    def list_forms(self) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").all()
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["created_at"], reverse=True)

    @backend_call
    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    @backend_call
    def create_form(self, form: dict[str, Any]) -> None:
        record = {
            "id": form["id"],
            "title": form["title"],
            "fields": form.get("fields") or [],
            "created_at": to_iso(form["created_at"]),
            "created_by": form.get("created_by"),
        }
        with self._db() as db:
            db.table("forms").insert(record)

    @backend_call
    def update_fields(self, form_id: str, fields: list[dict[str, Any]]) -> None:
        with self._db() as db:
            updated = db.table("forms").update({"fields": fields}, Query().id == form_id)
        if not updated:
            raise KeyError(form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "title": record.get("title", ""),
            "fields": record.get("fields", []),
            "created_at": parse_dt(record.get("created_at")),
            "created_by": record.get("created_by"),
        }


class JSONSubmissionRepo(JSONRepoBase):
    @backend_call
    def list_submissions(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("form_submissions").search(Query().form_id == form_id)
        submissions = [self._from_record(item) for item in items]
        return sorted(submissions, key=lambda x: x["created_at"], reverse=True)

    @backend_call
    def create_submission(self, submission: dict[str, Any]) -> None:
        record = {
            "id": submission["id"],
            "form_id": submission["form_id"],
            "user_id": submission["user_id"],
            "data": submission["data"],
            "created_at": to_iso(submission["created_at"]),
        }
        with self._db() as db:
            db.table("form_submissions").insert(record)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "user_id": record.get("user_id"),
            "data": record.get("data", {}),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONUserRepo(JSONRepoBase):
    @backend_call
    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().id == user_id)
        return self._from_record(item) if item else None

    @backend_call
    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().email == email)
        return self._from_record(item) if item else None

    @backend_call
    def create_user(self, user: dict[str, Any]) -> None:
        with self._db() as db:
            table = db.table("users")
            if table.contains(Query().email == user["email"]):
                raise ValueError(f"User already exists: {user['email']}")
            table.insert(
                {
                    "id": user["id"],
                    "email": user["email"],
                    "password_hash": user["password_hash"],
                    "created_at": to_iso(user["created_at"])
                    if isinstance(user["created_at"], datetime)
                    else user["created_at"],
                }
            )

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "email": record["email"],
            "password_hash": record.get("password_hash", ""),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.forms = JSONFormRepo(path, self._lock)
        self.submissions = JSONSubmissionRepo(path, self._lock)
        self.users = JSONUserRepo(path, self._lock)
