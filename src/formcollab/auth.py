from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import HTTPException, Request, status
from passlib.context import CryptContext

from formcollab.errors import BackendError
from formcollab.storage import Storage
from formcollab.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_USER_KEY = "user_id"
LOGIN_PATH = "/login"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_user(storage: Storage, email: str, password: str) -> dict[str, Any]:
    email = email.strip().lower()
    if not email:
        raise ValueError("email is required")
    if not password:
        raise ValueError("password is required")
    if storage.users.get_user_by_email(email):
        raise ValueError(f"User already exists: {email}")
    user = {
        "id": new_ulid(),
        "email": email,
        "password_hash": get_password_hash(password),
        "created_at": now_utc(),
    }
    storage.users.create_user(user)
    return {"id": user["id"], "email": email}


class AuthProvider(Protocol):
    def get_user(self, request: Request) -> dict[str, Any] | None: ...

    def sign_in(self, request: Request, email: str, password: str) -> dict[str, Any] | None: ...

    def sign_out(self, request: Request) -> None: ...


class SessionAuthProvider:
    """Principal lookup backed by the signed session cookie."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def get_user(self, request: Request) -> dict[str, Any] | None:
        user_id = request.session.get(SESSION_USER_KEY)
        if not user_id:
            return None
        try:
            user = self._storage.users.get_user(user_id)
        except BackendError:
            logger.exception("Error fetching user %s", user_id)
            return None
        if not user:
            # 削除済みユーザーのセッションは破棄する
            request.session.pop(SESSION_USER_KEY, None)
            return None
        return {"id": user["id"], "email": user["email"]}

    def sign_in(self, request: Request, email: str, password: str) -> dict[str, Any] | None:
        user = self._storage.users.get_user_by_email(email.strip().lower())
        if not user or not verify_password(password, user["password_hash"]):
            logger.info("Failed sign-in for %s", email)
            return None
        request.session.clear()
        request.session[SESSION_USER_KEY] = user["id"]
        logger.info("Signed in %s", user["email"])
        return {"id": user["id"], "email": user["email"]}

    def sign_out(self, request: Request) -> None:
        request.session.clear()


def current_user(request: Request) -> dict[str, Any] | None:
    return request.app.state.auth_provider.get_user(request)


def require_user(request: Request) -> dict[str, Any]:
    user = current_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            headers={"Location": LOGIN_PATH},
        )
    return user
