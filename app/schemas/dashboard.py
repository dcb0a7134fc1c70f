"""
app/schemas/dashboard.py

Response schemas for the dashboard read API.

Fields are snake_case in Python and serialized as camelCase for the
dashboard client.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DashboardStatsResponse(_CamelModel):
    total_scripts: int = Field(..., ge=0)
    healthy_count: int = Field(..., ge=0)
    warning_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    executions_today: int = Field(..., ge=0)
    success_rate: float = Field(..., ge=0, le=100)
    avg_execution_time: float = Field(..., ge=0)


class ScriptFileResponse(_CamelModel):
    name: str
    file_type: str
    content: str


class ScriptFunctionResponse(_CamelModel):
    name: str
    description: str | None = None
    parameters: list[str] = Field(default_factory=list)
    is_public: bool
    line_count: int | None = None
    file_name: str | None = None


class ScriptTriggerResponse(_CamelModel):
    trigger_type: str
    function_name: str
    schedule: str | None = None
    schedule_description: str | None = None
    source_event: str | None = None
    is_programmatic: bool
    status: str


class ScriptExternalApiResponse(_CamelModel):
    url: str
    base_url: str
    method: str
    description: str | None = None
    usage_count: int = Field(1, ge=1)
    code_location: str | None = None


class ScriptConnectedFileResponse(_CamelModel):
    file_id: str
    file_name: str | None = None
    file_type: str
    file_url: str | None = None
    access_type: str
    extracted_from: str
    code_location: str | None = None


class ScriptSummaryResponse(_CamelModel):
    """
    One row of the script list.

    ``health`` is derived from the most recent execution:
    healthy, warning or error.
    """

    id: str
    name: str
    description: str | None = None
    parent_file_name: str | None = None
    parent_file_type: str | None = None
    discovery_source: str | None = None
    functional_summary: str | None = None
    complexity: str | None = None
    lines_of_code: int | None = None
    google_services: list[str] = Field(default_factory=list)
    trigger_count: int = Field(0, ge=0)
    execution_count: int = Field(0, ge=0)
    health: str
    last_synced_at: datetime | None = None
    last_analyzed_at: datetime | None = None


class ScriptDetailResponse(ScriptSummaryResponse):
    workflow_steps: list[str] = Field(default_factory=list)
    files: list[ScriptFileResponse] = Field(default_factory=list)
    functions: list[ScriptFunctionResponse] = Field(default_factory=list)
    triggers: list[ScriptTriggerResponse] = Field(default_factory=list)
    external_apis: list[ScriptExternalApiResponse] = Field(default_factory=list)
    connected_files: list[ScriptConnectedFileResponse] = Field(default_factory=list)


class ExecutionResponse(_CamelModel):
    id: uuid.UUID
    script_id: str
    function_name: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_seconds: float | None = None
    status: str
    error_message: str | None = None
