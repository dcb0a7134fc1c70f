"""
db/repositories/execution_repository.py

Persistence layer for execution history.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.execution import Execution


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ExecutionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def exists(self, *, script_id: str, started_at: datetime, function_name: str) -> bool:
        stmt = (
            select(Execution.id)
            .where(
                Execution.script_id == script_id,
                Execution.started_at == _as_utc(started_at),
                Execution.function_name == function_name,
            )
            .limit(1)
        )
        return self._session.scalar(stmt) is not None

    def add_execution(
        self,
        *,
        script_id: str,
        function_name: str,
        started_at: datetime,
        status: str,
        ended_at: datetime | None = None,
        duration_seconds: float | None = None,
        error_message: str | None = None,
    ) -> Execution:
        execution = Execution(
            script_id=script_id,
            function_name=function_name,
            started_at=_as_utc(started_at),
            ended_at=_as_utc(ended_at) if ended_at is not None else None,
            duration_seconds=duration_seconds,
            status=status,
            error_message=error_message,
        )
        self._session.add(execution)
        self._session.flush()
        return execution

    def count(self, *, since: datetime | None = None, statuses: Iterable[str] | None = None) -> int:
        stmt = select(func.count()).select_from(Execution)
        if since is not None:
            stmt = stmt.where(Execution.started_at >= _as_utc(since))
        if statuses is not None:
            stmt = stmt.where(Execution.status.in_(list(statuses)))
        return int(self._session.scalar(stmt) or 0)

    def average_duration(self, *, status: str) -> float | None:
        stmt = select(func.avg(Execution.duration_seconds)).where(
            Execution.status == status,
            Execution.duration_seconds.is_not(None),
        )
        value = self._session.scalar(stmt)
        return float(value) if value is not None else None

    def list_recent(
        self,
        *,
        limit: int = 100,
        script_id: str | None = None,
        status: str | None = None,
    ) -> list[Execution]:
        stmt: Select[tuple[Execution]] = select(Execution)
        if script_id:
            stmt = stmt.where(Execution.script_id == script_id)
        if status:
            stmt = stmt.where(Execution.status == status)
        stmt = stmt.order_by(Execution.started_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
