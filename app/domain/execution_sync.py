"""
app/domain/execution_sync.py

Domain models for execution-log sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ExecutionRecord:
    """
    One execution normalized from an Apps Script process entry.
    """

    function_name: str
    started_at: datetime
    status: str
    ended_at: datetime | None = None
    duration_seconds: float | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ExecutionFetchResult:
    executions: list[ExecutionRecord]
    error: str | None = None


@dataclass(frozen=True)
class ScriptExecutionSyncItem:
    script_id: str
    name: str
    executions_fetched: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "id": self.script_id,
            "name": self.name,
            "executionsFetched": self.executions_fetched,
        }
        if self.error is not None:
            item["error"] = self.error
        return item


@dataclass(frozen=True)
class ExecutionSyncSummary:
    synced: int
    failed: int
    scripts: list[ScriptExecutionSyncItem] = field(default_factory=list)
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "synced": self.synced,
            "failed": self.failed,
            "scripts": [item.to_dict() for item in self.scripts],
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload
