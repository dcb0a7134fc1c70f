"""
app/domain/cron_sync.py

Request-scoped types for the cron sync trigger: auth mode, trigger,
downstream results and the aggregate report.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union


class AuthModeKind:
    OPEN = "open"
    SECRET = "secret"


@dataclass(frozen=True)
class AuthMode:
    """
    How the sync trigger is authorized.

    ``open`` lets every request through (no secret configured);
    ``secret`` requires the supplied secret to match exactly.
    """

    kind: str
    secret: str | None = field(default=None, repr=False)

    @classmethod
    def open(cls) -> AuthMode:
        return cls(kind=AuthModeKind.OPEN)

    @classmethod
    def from_secret(cls, secret: str | None) -> AuthMode:
        """
        Build a secret mode, or an open mode when ``secret`` is empty.
        """

        if not secret:
            return cls.open()
        return cls(kind=AuthModeKind.SECRET, secret=secret)

    @property
    def is_open(self) -> bool:
        return self.kind == AuthModeKind.OPEN

    def authorize(self, supplied_secret: str | None) -> bool:
        if self.is_open:
            return True
        if supplied_secret is None or self.secret is None:
            return False
        return secrets.compare_digest(supplied_secret.encode("utf-8"), self.secret.encode("utf-8"))


@dataclass(frozen=True)
class SyncTrigger:
    """
    Incoming trigger; the secret comes from ``x-cron-secret`` or ``?secret=``.
    """

    supplied_secret: str | None = field(default=None, repr=False)

    @classmethod
    def from_sources(cls, *, header_secret: str | None, query_secret: str | None) -> SyncTrigger:
        return cls(supplied_secret=header_secret or query_secret)


@dataclass(frozen=True)
class DownstreamSuccess:
    status_code: int
    payload: Any


@dataclass(frozen=True)
class DownstreamFailure:
    """
    Non-2xx response. ``body`` is parsed JSON when possible, raw text otherwise.
    """

    status_code: int
    body: Any


DownstreamResult = Union[DownstreamSuccess, DownstreamFailure]


@dataclass(frozen=True)
class CronSyncResponse:
    """
    HTTP status plus JSON body produced by one orchestrator invocation.
    """

    status_code: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))


def utc_timestamp(moment: datetime | None = None) -> str:
    """
    ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix.
    """

    value = moment or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
