from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from formcollab.config import Settings, ensure_dirs
from formcollab.errors import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backend_call(func: Callable[..., T]) -> Callable[..., T]:
    """Re-raise storage failures as BackendError."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return func(*args, **kwargs)
        except BackendError:
            raise
        except KeyError as exc:
            raise BackendError(f"Record not found: {exc.args[0]}") from exc
        except (SQLAlchemyError, OSError, ValueError) as exc:
            raise BackendError(str(exc) or exc.__class__.__name__) from exc

    return wrapper


class FormRepository(Protocol):
    def list_forms(self) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_fields(self, form_id: str, fields: list[dict[str, Any]]) -> None: ...


class SubmissionRepository(Protocol):
    def list_submissions(self, form_id: str) -> list[dict[str, Any]]: ...

    def create_submission(self, submission: dict[str, Any]) -> None: ...


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> dict[str, Any] | None: ...

    def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    def create_user(self, user: dict[str, Any]) -> None: ...


class Storage(Protocol):
    forms: FormRepository
    submissions: SubmissionRepository
    users: UserRepository


def init_storage(settings: Settings) -> Storage:
    ensure_dirs(settings)
    if settings.storage_backend == "json":
        from formcollab.repo_json import JSONStorage

        logger.info("Using JSON storage at %s", settings.json_path)
        return JSONStorage(settings.json_path)

    from formcollab.repo_sqlite import SQLiteStorage

    logger.info("Using SQLite storage at %s", settings.sqlite_path)
    return SQLiteStorage(settings.sqlite_path)
