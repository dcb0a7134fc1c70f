"""
app/services/execution_sync_service.py

Execution-log sync: pull recent process history for every stored script and
store the executions that are not in the database yet.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import ExecutionSyncSettings, get_execution_sync_settings
from app.connectors import AppsScriptConnector, GoogleAPIError, GoogleCredentialsError
from app.connectors.base import BaseGoogleConnector
from app.domain.execution_sync import (
    ExecutionFetchResult,
    ExecutionRecord,
    ExecutionSyncSummary,
    ScriptExecutionSyncItem,
)
from app.services.script_sync_service import get_apps_script_connector
from db.models.execution import ExecutionStatus
from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission denied - script may not have execution logging enabled"
NOT_FOUND_MESSAGE = "Script not found or no access"
INSUFFICIENT_SCOPE_MESSAGE = (
    "Execution logs require the script.processes scope. Re-authorize the Google "
    "credentials with https://www.googleapis.com/auth/script.processes and sync again."
)

_PROCESS_STATE_STATUS = {
    "COMPLETED": ExecutionStatus.SUCCESS,
    "FAILED": ExecutionStatus.ERROR,
    "TIMED_OUT": ExecutionStatus.ERROR,
    "UNKNOWN": ExecutionStatus.ERROR,
    "CANCELED": ExecutionStatus.WARNING,
}


def map_process_state(state: str | None) -> str:
    """
    Map an Apps Script ``processStatus`` to an execution status; a missing
    status counts as UNKNOWN.
    """

    return _PROCESS_STATE_STATUS.get((state or "UNKNOWN").upper(), ExecutionStatus.SUCCESS)


def parse_duration(value: Any) -> float | None:
    """
    Parse a protobuf duration such as ``"1.234s"`` into seconds.
    """

    if value is None:
        return None
    text = str(value).strip()
    if text.endswith("s"):
        text = text[:-1]
    try:
        return float(text)
    except ValueError:
        return None


def to_execution_record(process: dict[str, Any]) -> ExecutionRecord | None:
    """
    Normalize one process entry; entries without a start time are dropped.
    """

    start_time = process.get("startTime")
    if not start_time:
        return None
    try:
        started_at = BaseGoogleConnector.parse_iso_datetime(str(start_time))
    except ValueError:
        logger.warning("Unparseable process start time value=%r", start_time)
        return None

    duration = parse_duration(process.get("duration"))
    state = str(process.get("processStatus") or "UNKNOWN")
    return ExecutionRecord(
        function_name=str(process.get("functionName") or "unknown"),
        started_at=started_at,
        status=map_process_state(state),
        ended_at=started_at + timedelta(seconds=duration) if duration is not None else None,
        duration_seconds=duration,
        error_message="Execution failed" if state.upper() == "FAILED" else None,
    )


def _friendly_error(exc: Exception) -> str:
    if isinstance(exc, GoogleAPIError):
        if exc.status_code == 403 and not _is_scope_error(str(exc)):
            return PERMISSION_DENIED_MESSAGE
        if exc.status_code == 404:
            return NOT_FOUND_MESSAGE
    return str(exc)


def _is_scope_error(message: str) -> bool:
    return "insufficient authentication scopes" in message.lower()


class ExecutionSyncService:
    def __init__(self, *, settings: ExecutionSyncSettings, apps_script: AppsScriptConnector) -> None:
        self._settings = settings
        self._apps_script = apps_script

    def fetch_executions(self, script_id: str) -> ExecutionFetchResult:
        try:
            processes = self._apps_script.list_script_processes(script_id, page_size=self._settings.page_size)
        except (GoogleAPIError, GoogleCredentialsError) as exc:
            logger.warning("Execution fetch failed script_id=%s error=%s", script_id, exc)
            return ExecutionFetchResult(executions=[], error=_friendly_error(exc))

        records = [record for record in map(to_execution_record, processes) if record is not None]
        return ExecutionFetchResult(executions=records)

    def sync(self, *, db: Session) -> ExecutionSyncSummary:
        """
        Sync executions for every stored script.

        ``synced`` counts newly stored executions; ``failed`` counts scripts
        whose history could not be fetched or stored.
        """

        script_refs = ScriptRepository(db).list_script_refs()
        if not script_refs:
            return ExecutionSyncSummary(synced=0, failed=0, message="No scripts in database. Run script sync first.")

        repository = ExecutionRepository(db)
        items: list[ScriptExecutionSyncItem] = []
        synced = 0
        failed = 0
        scope_error = False

        for script_id, name in script_refs:
            result = self.fetch_executions(script_id)
            if result.error is not None:
                failed += 1
                scope_error = scope_error or _is_scope_error(result.error)
                items.append(ScriptExecutionSyncItem(script_id, name, 0, error=result.error))
                continue

            try:
                inserted = self._store(repository, script_id, result.executions)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Failed to store executions script_id=%s error=%s", script_id, exc)
                failed += 1
                items.append(ScriptExecutionSyncItem(script_id, name, len(result.executions), error=str(exc)))
                continue

            synced += inserted
            items.append(ScriptExecutionSyncItem(script_id, name, len(result.executions)))
            logger.info(
                "Synced executions script_id=%s fetched=%d inserted=%d",
                script_id,
                len(result.executions),
                inserted,
            )

        logger.info("Execution sync complete synced=%d failed=%d", synced, failed)
        return ExecutionSyncSummary(
            synced=synced,
            failed=failed,
            scripts=items,
            message=INSUFFICIENT_SCOPE_MESSAGE if scope_error else None,
        )

    @staticmethod
    def _store(repository: ExecutionRepository, script_id: str, records: list[ExecutionRecord]) -> int:
        inserted = 0
        for record in records:
            if repository.exists(
                script_id=script_id,
                started_at=record.started_at,
                function_name=record.function_name,
            ):
                continue
            repository.add_execution(
                script_id=script_id,
                function_name=record.function_name,
                started_at=record.started_at,
                status=record.status,
                ended_at=record.ended_at,
                duration_seconds=record.duration_seconds,
                error_message=record.error_message,
            )
            inserted += 1
        return inserted

    def get_stats(self, *, db: Session, now: datetime | None = None) -> dict[str, Any]:
        current = now or datetime.now(timezone.utc)
        repository = ExecutionRepository(db)
        return {
            "last24Hours": _window_stats(repository, current - timedelta(hours=24)),
            "last7Days": _window_stats(repository, current - timedelta(days=7)),
        }


def _window_stats(repository: ExecutionRepository, since: datetime) -> dict[str, Any]:
    total = repository.count(since=since)
    successful = repository.count(since=since, statuses=[ExecutionStatus.SUCCESS])
    errors = repository.count(since=since, statuses=[ExecutionStatus.ERROR])
    return {
        "total": total,
        "successful": successful,
        "failed": errors,
        "successRate": round(successful / total * 100) if total else 100,
    }


@lru_cache(maxsize=1)
def get_execution_sync_service() -> ExecutionSyncService:
    return ExecutionSyncService(
        settings=get_execution_sync_settings(),
        apps_script=get_apps_script_connector(),
    )
