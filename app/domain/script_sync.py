"""
app/domain/script_sync.py

Domain models for script discovery, analysis and content sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DiscoveredScript:
    """
    A script found by one of the discovery sources.
    """

    script_id: str
    name: str
    source: str
    parent_id: str | None = None
    parent_name: str | None = None


@dataclass(frozen=True)
class ScriptSourceFile:
    """
    One file returned by the Apps Script ``projects.getContent`` call.
    """

    name: str
    file_type: str
    source: str


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    description: str
    parameters: list[str]
    is_public: bool
    line_count: int
    file_name: str | None = None


@dataclass(frozen=True)
class TriggerInfo:
    trigger_type: str
    function_name: str
    schedule: str | None = None
    schedule_description: str | None = None
    source_event: str | None = None
    is_programmatic: bool = False


@dataclass(frozen=True)
class ApiUsage:
    """
    An external HTTP endpoint referenced by the code.

    ``url`` is normalized (lowercase scheme and host, no trailing slash) and
    trimmed to the first two path segments.
    """

    url: str
    base_url: str
    method: str
    description: str
    count: int = 1
    code_location: str | None = None


@dataclass(frozen=True)
class ConnectedFileInfo:
    file_id: str
    file_type: str
    access_type: str
    extracted_from: str
    file_name: str | None = None
    file_url: str | None = None
    code_location: str | None = None


@dataclass(frozen=True)
class ScriptAnalysis:
    """
    Static analysis result for one script project.
    """

    script_id: str
    name: str
    functions: list[FunctionInfo]
    google_services: list[str]
    triggers: list[TriggerInfo]
    lines_of_code: int
    complexity: str
    summary: str
    workflow_steps: list[str] = field(default_factory=list)
    external_apis: list[ApiUsage] = field(default_factory=list)
    connected_files: list[ConnectedFileInfo] = field(default_factory=list)

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "summary": self.summary,
            "complexity": self.complexity,
            "linesOfCode": self.lines_of_code,
            "functionCount": len(self.functions),
            "triggerCount": len(self.triggers),
            "googleServices": list(self.google_services),
            "workflowSteps": list(self.workflow_steps),
            "externalApis": [api.url for api in self.external_apis],
            "connectedFileCount": len(self.connected_files),
        }


@dataclass(frozen=True)
class ScriptSyncItem:
    script_id: str
    name: str
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"id": self.script_id, "name": self.name, "status": self.status}
        if self.error is not None:
            item["error"] = self.error
        return item


@dataclass(frozen=True)
class ScriptSyncSummary:
    """
    End-of-run content sync summary.
    """

    synced: int
    failed: int
    scripts: list[ScriptSyncItem] = field(default_factory=list)
    analyses: list[ScriptAnalysis] = field(default_factory=list)
