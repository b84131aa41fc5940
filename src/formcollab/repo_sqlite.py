from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from formcollab.models import Base, FormModel, SubmissionModel, UserModel
from formcollab.storage import backend_call
from formcollab.utils import dumps_json, ensure_aware, loads_json


class SQLiteFormRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    @backend_call
    def list_forms(self) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = session.query(FormModel).order_by(FormModel.created_at.desc()).all()
            return [self._to_dict(row) for row in rows]

    @backend_call
    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    @backend_call
    def create_form(self, form: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FormModel(
                id=form["id"],
                title=form["title"],
                fields=dumps_json(form.get("fields") or []),
                created_at=form["created_at"],
                created_by=form.get("created_by"),
            )
            session.add(row)
            session.commit()

    @backend_call
    def update_fields(self, form_id: str, fields: list[dict[str, Any]]) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            row.fields = dumps_json(fields)
            session.commit()

    @staticmethod
    def _to_dict(row: FormModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "title": row.title or "",
            "fields": loads_json(row.fields) or [],
            "created_at": ensure_aware(row.created_at),
            "created_by": row.created_by,
        }


class SQLiteSubmissionRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    @backend_call
    def list_submissions(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(SubmissionModel)
                .filter(SubmissionModel.form_id == form_id)
                .order_by(SubmissionModel.created_at.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    @backend_call
    def create_submission(self, submission: dict[str, Any]) -> None:
        with self._Session() as session:
            row = SubmissionModel(
                id=submission["id"],
                form_id=submission["form_id"],
                user_id=submission["user_id"],
                data=dumps_json(submission["data"]),
                created_at=submission["created_at"],
            )
            session.add(row)
            session.commit()

    @staticmethod
    def _to_dict(row: SubmissionModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "user_id": row.user_id,
            "data": loads_json(row.data) or {},
            "created_at": ensure_aware(row.created_at),
        }


class SQLiteUserRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    @backend_call
    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(UserModel, user_id)
            return self._to_dict(row) if row else None

    @backend_call
    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.query(UserModel).filter(UserModel.email == email).first()
            return self._to_dict(row) if row else None

    @backend_call
    def create_user(self, user: dict[str, Any]) -> None:
        with self._Session() as session:
            row = UserModel(
                id=user["id"],
                email=user["email"],
                password_hash=user["password_hash"],
                created_at=user["created_at"],
            )
            session.add(row)
            session.commit()

    @staticmethod
    def _to_dict(row: UserModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "email": row.email,
            "password_hash": row.password_hash,
            "created_at": ensure_aware(row.created_at),
        }


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.forms = SQLiteFormRepo(self._Session)
        self.submissions = SQLiteSubmissionRepo(self._Session)
        self.users = SQLiteUserRepo(self._Session)
