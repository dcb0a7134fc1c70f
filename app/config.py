"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from app.domain.cron_sync import AuthMode
from db.config import load_env_files

DEFAULT_CONTENT_SYNC_PATH = "/api/sync"
DEFAULT_EXECUTION_SYNC_PATH = "/api/sync/executions"
DEFAULT_MAX_DURATION_SECONDS = 300.0
DEFAULT_LOCAL_PORT = "8000"


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_raw_str_env(name: str) -> str | None:
    """
    Read a string value verbatim; surrounding whitespace is kept.
    """

    _load_env_once()
    return os.getenv(name) or None


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


# ---------------------------------------------------------------------------
# Cron sync
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CronSyncSettings:
    """
    Settings consumed by the cron sync orchestrator.

    Built once at startup and handed to the orchestrator; the request path
    never reads the process environment.
    """

    auth_mode: AuthMode
    base_url: str
    max_duration_seconds: float = DEFAULT_MAX_DURATION_SECONDS
    content_sync_path: str = DEFAULT_CONTENT_SYNC_PATH
    execution_sync_path: str = DEFAULT_EXECUTION_SYNC_PATH

    @property
    def content_sync_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.content_sync_path}"

    @property
    def execution_sync_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.execution_sync_path}"


def resolve_base_url(
    *,
    app_url: str | None,
    public_domain: str | None,
    port: str | None = None,
) -> str:
    """
    Resolve the base URL used to reach the internal sync endpoints.

    Priority:
    1) APP_URL
    2) https://RAILWAY_PUBLIC_DOMAIN
    3) http://localhost:<PORT or 8000>
    """

    if app_url:
        return app_url.rstrip("/")
    if public_domain:
        return f"https://{public_domain.strip('/')}"
    return f"http://localhost:{port or DEFAULT_LOCAL_PORT}"


@lru_cache(maxsize=1)
def get_cron_sync_settings() -> CronSyncSettings:
    """
    Return cron sync settings from environment variables.

    An unset or empty CRON_SECRET selects the open auth mode. The secret is
    compared exactly, whitespace included.
    """

    return CronSyncSettings(
        auth_mode=AuthMode.from_secret(_get_raw_str_env("CRON_SECRET")),
        base_url=resolve_base_url(
            app_url=_get_optional_str_env("APP_URL"),
            public_domain=_get_optional_str_env("RAILWAY_PUBLIC_DOMAIN"),
            port=_get_optional_str_env("PORT"),
        ),
        max_duration_seconds=max(
            1.0,
            _get_float_env("CRON_SYNC_MAX_DURATION_SECONDS", DEFAULT_MAX_DURATION_SECONDS),
        ),
    )


# ---------------------------------------------------------------------------
# Google APIs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for Google API connectors.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class GoogleAPISettings:
    """
    OAuth client credentials and endpoints for Google API access.

    Credentials come from the environment; when GOOGLE_CLIENT_ID or
    GOOGLE_REFRESH_TOKEN is missing the connectors fall back to the
    clasp credentials file.
    """

    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    access_token: str | None = field(default=None, repr=False)
    clasprc_path: Path = field(default_factory=lambda: Path.home() / ".clasprc.json")
    token_uri: str = "https://oauth2.googleapis.com/token"
    drive_base_url: str = "https://www.googleapis.com/drive/v3"
    script_base_url: str = "https://script.googleapis.com/v1"


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_google_api_settings() -> GoogleAPISettings:
    """
    Return Google API settings from environment variables.
    """

    clasprc_override = _get_optional_str_env("CLASPRC_PATH")
    return GoogleAPISettings(
        client_id=_get_optional_str_env("GOOGLE_CLIENT_ID"),
        client_secret=_get_optional_str_env("GOOGLE_CLIENT_SECRET"),
        refresh_token=_get_optional_str_env("GOOGLE_REFRESH_TOKEN"),
        access_token=_get_optional_str_env("GOOGLE_ACCESS_TOKEN"),
        clasprc_path=Path(clasprc_override).expanduser() if clasprc_override else Path.home() / ".clasprc.json",
        token_uri=_get_str_env("GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token"),
        drive_base_url=_get_str_env("GOOGLE_DRIVE_BASE_URL", "https://www.googleapis.com/drive/v3"),
        script_base_url=_get_str_env("GOOGLE_SCRIPT_BASE_URL", "https://script.googleapis.com/v1"),
    )


# ---------------------------------------------------------------------------
# Content and execution sync
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ManualScript:
    script_id: str
    name: str


@dataclass(frozen=True)
class ScriptSyncSettings:
    """
    Discovery and analysis settings for content sync.
    """

    manual_scripts: tuple[ManualScript, ...] = ()
    discovery_enabled: bool = True
    use_drive_api: bool = True
    use_bound_scripts: bool = True
    max_scripts: int = 100
    analyze_after_sync: bool = True


@dataclass(frozen=True)
class ExecutionSyncSettings:
    page_size: int = 50


def parse_manual_scripts(raw: str | None) -> tuple[ManualScript, ...]:
    """
    Parse ``id:name,id:name`` pairs; a bare ``id`` uses the id as its name.
    """

    if not raw:
        return ()
    scripts: list[ManualScript] = []
    seen: set[str] = set()
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        script_id, _, name = token.partition(":")
        script_id = script_id.strip()
        if not script_id or script_id in seen:
            continue
        seen.add(script_id)
        scripts.append(ManualScript(script_id=script_id, name=name.strip() or script_id))
    return tuple(scripts)


@lru_cache(maxsize=1)
def get_script_sync_settings() -> ScriptSyncSettings:
    """
    Return content sync settings from environment variables.
    """

    return ScriptSyncSettings(
        manual_scripts=parse_manual_scripts(_get_optional_str_env("SCRIPT_SYNC_MANUAL_IDS")),
        discovery_enabled=_get_bool_env("SCRIPT_DISCOVERY_ENABLED", True),
        use_drive_api=_get_bool_env("SCRIPT_DISCOVERY_USE_DRIVE_API", True),
        use_bound_scripts=_get_bool_env("SCRIPT_DISCOVERY_USE_BOUND_SCRIPTS", True),
        max_scripts=max(1, _get_int_env("SCRIPT_SYNC_MAX_SCRIPTS", 100)),
        analyze_after_sync=_get_bool_env("SCRIPT_SYNC_ANALYZE", True),
    )


@lru_cache(maxsize=1)
def get_execution_sync_settings() -> ExecutionSyncSettings:
    """
    Return execution sync settings from environment variables.
    """

    return ExecutionSyncSettings(
        page_size=min(200, max(1, _get_int_env("EXECUTION_SYNC_PAGE_SIZE", 50))),
    )


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SchedulerSettings:
    enabled: bool = True
    minute: int = 0
    misfire_grace_seconds: int = 900


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return in-process scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        minute=min(59, max(0, _get_int_env("CRON_SYNC_MINUTE", 0))),
        misfire_grace_seconds=max(1, _get_int_env("CRON_SYNC_MISFIRE_GRACE_SECONDS", 900)),
    )
