"""
app/connectors/apps_script_connector.py

Google Apps Script API v1 connector: project metadata, source content,
process (execution) history and usage metrics.
"""

from __future__ import annotations

from typing import Any

from app.connectors.base import BaseGoogleConnector
from app.domain.script_sync import ScriptSourceFile


class AppsScriptConnector(BaseGoogleConnector):
    api_name = "apps_script"

    def get_project(self, script_id: str) -> dict[str, Any]:
        return self._get_json(f"projects/{script_id}")

    def get_content(self, script_id: str) -> list[ScriptSourceFile]:
        payload = self._get_json(f"projects/{script_id}/content")
        files: list[ScriptSourceFile] = []
        for item in payload.get("files") or []:
            if not isinstance(item, dict):
                continue
            files.append(
                ScriptSourceFile(
                    name=str(item.get("name") or "unknown"),
                    file_type=str(item.get("type") or "SERVER_JS"),
                    source=str(item.get("source") or ""),
                )
            )
        return files

    def list_script_processes(self, script_id: str, *, page_size: int = 50) -> list[dict[str, Any]]:
        """
        Most recent processes for one script (a single page).
        """

        payload = self._get_json(
            "processes:listScriptProcesses",
            params={"scriptId": script_id, "pageSize": page_size},
        )
        return [item for item in payload.get("processes") or [] if isinstance(item, dict)]

    def get_metrics(self, script_id: str, *, granularity: str = "DAILY") -> dict[str, Any]:
        return self._get_json(
            f"projects/{script_id}/metrics",
            params={"metricsGranularity": granularity},
        )
