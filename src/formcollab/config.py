from __future__ import annotations

import os
import secrets
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

FIELD_TYPES = ("text", "textarea", "number", "select", "checkbox")


class Settings:
    def __init__(self) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        # 未指定なら起動ごとに生成するため、再起動でセッションは失効する
        self.secret_key = os.getenv("SECRET_KEY") or secrets.token_hex(32)
        self.session_cookie = os.getenv("SESSION_COOKIE", "formcollab_session")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host = os.getenv("HOST", "0.0.0.0")
        port_value = os.getenv("PORT", "8000")
        try:
            self.port = int(port_value)
        except ValueError:
            self.port = 8000


def ensure_dirs(settings: Settings) -> None:
    if settings.storage_backend == "json":
        settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
