"""
app/services/dashboard_service.py

Read-side queries behind the dashboard: headline stats, script list and
detail, recent executions.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.schemas.dashboard import (
    DashboardStatsResponse,
    ExecutionResponse,
    ScriptConnectedFileResponse,
    ScriptDetailResponse,
    ScriptExternalApiResponse,
    ScriptFileResponse,
    ScriptFunctionResponse,
    ScriptSummaryResponse,
    ScriptTriggerResponse,
)
from db.models.execution import ExecutionStatus
from db.models.script import Script
from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository

MAX_EXECUTION_LIMIT = 500

_HEALTH_BY_STATUS = {
    ExecutionStatus.SUCCESS: "healthy",
    ExecutionStatus.WARNING: "warning",
    ExecutionStatus.ERROR: "error",
}


def script_health(latest_status: str | None) -> str:
    """
    Scripts that never ran count as healthy.
    """

    return _HEALTH_BY_STATUS.get(latest_status or ExecutionStatus.SUCCESS, "healthy")


def get_dashboard_stats(db: Session, *, now: datetime | None = None) -> DashboardStatsResponse:
    scripts = ScriptRepository(db)
    executions = ExecutionRepository(db)
    current = now or datetime.now(timezone.utc)
    today = current.replace(hour=0, minute=0, second=0, microsecond=0)

    health = [script_health(status) for status in scripts.latest_execution_statuses().values()]
    total = executions.count()
    successful = executions.count(statuses=[ExecutionStatus.SUCCESS])
    average = executions.average_duration(status=ExecutionStatus.SUCCESS)

    return DashboardStatsResponse(
        total_scripts=len(health),
        healthy_count=health.count("healthy"),
        warning_count=health.count("warning"),
        error_count=health.count("error"),
        executions_today=executions.count(since=today),
        success_rate=round(successful / total * 100, 1) if total else 100.0,
        avg_execution_time=round(average, 1) if average is not None else 0.0,
    )


def list_script_summaries(db: Session) -> list[ScriptSummaryResponse]:
    repository = ScriptRepository(db)
    statuses = repository.latest_execution_statuses()
    counts = repository.execution_counts()
    return [
        ScriptSummaryResponse(**_summary_fields(script, statuses.get(script.id), counts.get(script.id, 0)))
        for script in repository.list_scripts()
    ]


def get_script_detail(db: Session, script_id: str) -> ScriptDetailResponse | None:
    repository = ScriptRepository(db)
    script = repository.get_script(script_id, with_children=True)
    if script is None:
        return None

    latest = repository.latest_execution_statuses().get(script.id)
    return ScriptDetailResponse(
        **_summary_fields(script, latest, repository.execution_counts().get(script.id, 0)),
        workflow_steps=list(script.workflow_steps or []),
        files=[
            ScriptFileResponse(name=item.name, file_type=item.file_type, content=item.content)
            for item in script.files
        ],
        functions=[
            ScriptFunctionResponse(
                name=item.name,
                description=item.description,
                parameters=list(item.parameters or []),
                is_public=item.is_public,
                line_count=item.line_count,
                file_name=item.file_name,
            )
            for item in script.functions
        ],
        triggers=[
            ScriptTriggerResponse(
                trigger_type=item.trigger_type,
                function_name=item.function_name,
                schedule=item.schedule,
                schedule_description=item.schedule_description,
                source_event=item.source_event,
                is_programmatic=item.is_programmatic,
                status=item.status,
            )
            for item in script.triggers
        ],
        external_apis=[
            ScriptExternalApiResponse(
                url=item.url,
                base_url=item.base_url,
                method=item.method,
                description=item.description,
                usage_count=item.usage_count,
                code_location=item.code_location,
            )
            for item in script.external_apis
        ],
        connected_files=[
            ScriptConnectedFileResponse(
                file_id=item.file_id,
                file_name=item.file_name,
                file_type=item.file_type,
                file_url=item.file_url,
                access_type=item.access_type,
                extracted_from=item.extracted_from,
                code_location=item.code_location,
            )
            for item in script.connected_files
        ],
    )


def list_recent_executions(
    db: Session,
    *,
    script_id: str | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[ExecutionResponse]:
    rows = ExecutionRepository(db).list_recent(
        limit=min(max(1, limit), MAX_EXECUTION_LIMIT),
        script_id=script_id,
        status=status,
    )
    return [
        ExecutionResponse(
            id=row.id,
            script_id=row.script_id,
            function_name=row.function_name,
            started_at=row.started_at,
            ended_at=row.ended_at,
            duration_seconds=row.duration_seconds,
            status=row.status,
            error_message=row.error_message,
        )
        for row in rows
    ]


def _summary_fields(script: Script, latest_status: str | None, execution_count: int) -> dict:
    return {
        "id": script.id,
        "name": script.name,
        "description": script.description,
        "parent_file_name": script.parent_file_name,
        "parent_file_type": script.parent_file_type,
        "discovery_source": script.discovery_source,
        "functional_summary": script.functional_summary,
        "complexity": script.complexity,
        "lines_of_code": script.lines_of_code,
        "google_services": list(script.google_services or []),
        "trigger_count": len(script.triggers),
        "execution_count": execution_count,
        "health": script_health(latest_status),
        "last_synced_at": script.last_synced_at,
        "last_analyzed_at": script.last_analyzed_at,
    }
