"""
tests/test_execution_sync_service.py

Tests for ExecutionSyncService with a fake Apps Script connector and an
in-memory SQLite database.

Coverage
--------
- Process state mapping and duration parsing
- Process entry normalization (a missing status counts as an error)
- Only new executions are inserted (re-sync is idempotent)
- Friendly 403 / 404 errors and the insufficient-scope message
- Empty database message
- 24h / 7d stats windows
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.orm import Session

from app.config import ExecutionSyncSettings
from app.connectors.base import GoogleAPIError
from app.services.execution_sync_service import (
    INSUFFICIENT_SCOPE_MESSAGE,
    NOT_FOUND_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    ExecutionSyncService,
    map_process_state,
    parse_duration,
    to_execution_record,
)
from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeAppsScript:
    def __init__(self, processes: dict[str, list[dict[str, Any]] | Exception]) -> None:
        self.processes = processes
        self.page_sizes: list[int] = []

    def list_script_processes(self, script_id: str, *, page_size: int = 50) -> list[dict[str, Any]]:
        self.page_sizes.append(page_size)
        outcome = self.processes.get(script_id, [])
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _process(function_name: str, start: datetime, state: str = "COMPLETED", duration: str = "1.5s") -> dict[str, Any]:
    return {
        "functionName": function_name,
        "startTime": start.isoformat().replace("+00:00", "Z"),
        "processStatus": state,
        "duration": duration,
    }


def _seed_scripts(db: Session, *script_ids: str) -> None:
    repository = ScriptRepository(db)
    for script_id in script_ids:
        repository.upsert_script(
            script_id=script_id,
            name=f"Script {script_id}",
            parent_file_id=None,
            parent_file_name=None,
            parent_file_type="standalone",
            discovery_source="config",
        )
    db.commit()


def _service(apps_script: FakeAppsScript, page_size: int = 50) -> ExecutionSyncService:
    return ExecutionSyncService(
        settings=ExecutionSyncSettings(page_size=page_size),
        apps_script=apps_script,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalization:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            ("COMPLETED", "success"),
            ("FAILED", "error"),
            ("TIMED_OUT", "error"),
            ("UNKNOWN", "error"),
            ("CANCELED", "warning"),
            ("RUNNING", "success"),
            (None, "error"),
            ("", "error"),
        ],
    )
    def test_map_process_state(self, state: str | None, expected: str) -> None:
        assert map_process_state(state) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1.234s", 1.234), ("12s", 12.0), (None, None), ("soon", None)],
    )
    def test_parse_duration(self, raw: str | None, expected: float | None) -> None:
        assert parse_duration(raw) == expected

    def test_failed_process_record(self) -> None:
        record = to_execution_record(
            {
                "functionName": "sendReport",
                "startTime": "2026-10-19T08:00:00.123456789Z",
                "processStatus": "FAILED",
                "duration": "2.5s",
            }
        )

        assert record is not None
        assert record.status == "error"
        assert record.error_message == "Execution failed"
        assert record.started_at == datetime(2026, 10, 19, 8, 0, 0, 123456, tzinfo=timezone.utc)
        assert record.ended_at == record.started_at + timedelta(seconds=2.5)

    def test_process_without_status_is_an_error(self) -> None:
        record = to_execution_record({"startTime": "2026-01-01T00:00:00Z", "functionName": "f"})

        assert record is not None
        assert record.status == "error"
        assert record.error_message is None

    def test_process_without_start_time_is_dropped(self) -> None:
        assert to_execution_record({"functionName": "x", "processStatus": "COMPLETED"}) is None


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSync:
    def test_inserts_only_new_executions(self, db_session: Session) -> None:
        _seed_scripts(db_session, "abc")
        apps_script = FakeAppsScript(
            {
                "abc": [
                    _process("sendReport", NOW - timedelta(hours=1)),
                    _process("sendReport", NOW - timedelta(hours=2), state="FAILED"),
                ]
            }
        )
        service = _service(apps_script, page_size=25)

        first = service.sync(db=db_session)
        second = service.sync(db=db_session)

        assert first.synced == 2
        assert first.failed == 0
        assert first.to_dict()["scripts"] == [{"id": "abc", "name": "Script abc", "executionsFetched": 2}]
        assert second.synced == 0
        assert ExecutionRepository(db_session).count() == 2
        assert apps_script.page_sizes == [25, 25]

    def test_friendly_errors_per_script(self, db_session: Session) -> None:
        _seed_scripts(db_session, "denied", "gone", "ok")
        service = _service(
            FakeAppsScript(
                {
                    "denied": GoogleAPIError("apps_script: 403 The caller does not have permission", status_code=403),
                    "gone": GoogleAPIError("apps_script: 404 Requested entity was not found.", status_code=404),
                    "ok": [_process("run", NOW)],
                }
            )
        )

        summary = service.sync(db=db_session)

        errors = {item.script_id: item.error for item in summary.scripts}
        assert errors == {"denied": PERMISSION_DENIED_MESSAGE, "gone": NOT_FOUND_MESSAGE, "ok": None}
        assert summary.synced == 1
        assert summary.failed == 2
        assert summary.message is None

    def test_insufficient_scope_sets_message(self, db_session: Session) -> None:
        _seed_scripts(db_session, "abc")
        service = _service(
            FakeAppsScript(
                {
                    "abc": GoogleAPIError(
                        "apps_script: 403 Request had insufficient authentication scopes.",
                        status_code=403,
                    )
                }
            )
        )

        summary = service.sync(db=db_session)

        assert summary.failed == 1
        assert summary.message == INSUFFICIENT_SCOPE_MESSAGE
        assert summary.to_dict()["message"] == INSUFFICIENT_SCOPE_MESSAGE

    def test_empty_database(self, db_session: Session) -> None:
        summary = _service(FakeAppsScript({})).sync(db=db_session)

        assert summary.to_dict() == {
            "synced": 0,
            "failed": 0,
            "scripts": [],
            "message": "No scripts in database. Run script sync first.",
        }


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class TestStats:
    def test_windows(self, db_session: Session) -> None:
        _seed_scripts(db_session, "abc")
        repository = ExecutionRepository(db_session)
        for hours_ago, status in [(1, "success"), (2, "error"), (30, "success"), (24 * 10, "success")]:
            repository.add_execution(
                script_id="abc",
                function_name=f"run{hours_ago}",
                started_at=NOW - timedelta(hours=hours_ago),
                status=status,
            )
        db_session.commit()

        stats = _service(FakeAppsScript({})).get_stats(db=db_session, now=NOW)

        assert stats["last24Hours"] == {"total": 2, "successful": 1, "failed": 1, "successRate": 50}
        assert stats["last7Days"] == {"total": 3, "successful": 2, "failed": 1, "successRate": 67}

    def test_empty_windows_report_full_success(self, db_session: Session) -> None:
        stats = _service(FakeAppsScript({})).get_stats(db=db_session, now=NOW)
        assert stats["last24Hours"]["successRate"] == 100
