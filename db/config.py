"""
db/config.py

Environment helpers shared by the API process, the database layer and Alembic.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_ENV_FILENAMES = (".env", ".env.local")
_DATABASE_URL_VARIABLES = ("DATABASE_URL", "LOCAL_DATABASE_URL")
_POSTGRES_PREFIXES = {
    "postgres://": "postgresql+psycopg://",
    "postgresql://": "postgresql+psycopg://",
}

APPLICATION_NAME = "apps-script-monitor"


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` in the project root.

    Variables already present in the process environment win.
    """

    root = project_root or Path(__file__).resolve().parents[1]
    for filename in _ENV_FILENAMES:
        env_path = root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.removeprefix("export ").strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite provider-style postgres URLs to the psycopg driver form.
    """

    for prefix, replacement in _POSTGRES_PREFIXES.items():
        if url.startswith(prefix):
            return url.replace(prefix, replacement, 1)
    return url


def resolve_database_url() -> str:
    """
    Resolve the database URL.

    Priority:
    1) DATABASE_URL (Railway injects it for attached Postgres services)
    2) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in _DATABASE_URL_VARIABLES:
        value = (os.getenv(name) or "").strip()
        if value:
            return normalize_postgres_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL."
    )


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Engine and pool settings for the monitor database.

    A ``statement_timeout_ms`` of 0 disables the server-side timeout.
    """

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800
    statement_timeout_ms: int = 30_000

    @property
    def connect_args(self) -> dict[str, str]:
        options = f"-c statement_timeout={self.statement_timeout_ms}" if self.statement_timeout_ms > 0 else ""
        args = {"application_name": APPLICATION_NAME}
        if options:
            args["options"] = options
        return args


def get_database_settings() -> DatabaseSettings:
    """
    Read database settings from the environment; invalid numbers fall back
    to the defaults.
    """

    url = resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    defaults = DatabaseSettings(url=url)
    return DatabaseSettings(
        url=url,
        echo=_get_bool_env("SQL_ECHO", defaults.echo),
        pool_size=max(1, _get_int_env("DB_POOL_SIZE", defaults.pool_size)),
        max_overflow=max(0, _get_int_env("DB_MAX_OVERFLOW", defaults.max_overflow)),
        pool_recycle_seconds=_get_int_env("DB_POOL_RECYCLE", defaults.pool_recycle_seconds),
        statement_timeout_ms=max(0, _get_int_env("DB_STATEMENT_TIMEOUT_MS", defaults.statement_timeout_ms)),
    )


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default
