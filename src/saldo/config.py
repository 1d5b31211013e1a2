"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "Saldo"
    DB_FILENAME = "saldo.db"
    SQLITE_PRAGMAS = {"foreign_keys": "on"}
    MAX_PAGE_SIZE = 100
    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("SALDO_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("SALDO_DEV_MODE", default=True)
        self.SQL_ECHO = _env_bool("SALDO_SQL_ECHO", default=False)
        self.DATABASE_URL = os.getenv("SALDO_DATABASE_URL", self._build_sqlite_url())
        # Insufficient-funds policy: when False, debits may not push a source below zero.
        self.ALLOW_NEGATIVE_BALANCE = _env_bool("SALDO_ALLOW_NEGATIVE_BALANCE", default=True)
        self.DEFAULT_PAGE_SIZE = _env_int("SALDO_DEFAULT_PAGE_SIZE", 10)
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("SALDO_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("SALDO_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {"echo": self.SQL_ECHO}
        if self.is_sqlite:
            engine_options["connect_args"] = {"check_same_thread": False}
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True


class TestingConfig(BaseConfig):
    """Configuration used by the test suite and the Flask test client."""

    TESTING = True
