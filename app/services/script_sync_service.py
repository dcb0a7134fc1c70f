"""
app/services/script_sync_service.py

Content sync: discover Apps Script projects, fetch their source, analyze it
and mirror everything into the database.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import (
    ScriptSyncSettings,
    get_external_http_settings,
    get_google_api_settings,
    get_script_sync_settings,
)
from app.connectors import (
    AppsScriptConnector,
    DriveConnector,
    GoogleAccessTokenProvider,
    GoogleAPIError,
    GoogleCredentialsError,
)
from app.domain.script_sync import (
    ConnectedFileInfo,
    DiscoveredScript,
    ScriptAnalysis,
    ScriptSourceFile,
    ScriptSyncItem,
    ScriptSyncSummary,
)
from app.services.script_analyzer import ACTIVE_FILE_ID, analyze_script
from db.models.script import DiscoverySource, ParentFileType, Script
from db.models.script_connected_file import ScriptConnectedFile
from db.models.script_external_api import ScriptExternalApi
from db.models.script_file import ScriptFile
from db.models.script_function import ScriptFunction
from db.models.script_trigger import ScriptTrigger
from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository

logger = logging.getLogger(__name__)

_DISCOVERY_ERRORS = (GoogleAPIError, GoogleCredentialsError)


class ScriptSyncService:
    """
    Coordinates discovery, content fetching, analysis and persistence.

    Each script is committed on its own; one failing script never aborts
    the rest of the run.
    """

    def __init__(
        self,
        *,
        settings: ScriptSyncSettings,
        drive: DriveConnector,
        apps_script: AppsScriptConnector,
    ) -> None:
        self._settings = settings
        self._drive = drive
        self._apps_script = apps_script

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_scripts(self) -> list[DiscoveredScript]:
        """
        Manual scripts first, then Drive standalone scripts, then
        container-bound scripts. The first source to report an id wins.
        """

        discovered: dict[str, DiscoveredScript] = {}

        for manual in self._settings.manual_scripts:
            discovered[manual.script_id] = DiscoveredScript(
                script_id=manual.script_id,
                name=manual.name,
                source=DiscoverySource.CONFIG,
            )

        if not self._settings.discovery_enabled:
            logger.info("Script discovery disabled; using %d configured scripts", len(discovered))
            return list(discovered.values())[: self._settings.max_scripts]

        if self._settings.use_drive_api:
            for script in self._discover_standalone():
                discovered.setdefault(script.script_id, script)

        if self._settings.use_bound_scripts:
            for script in self._discover_bound():
                discovered.setdefault(script.script_id, script)

        logger.info("Script discovery complete unique_scripts=%d", len(discovered))
        return list(discovered.values())[: self._settings.max_scripts]

    def _discover_standalone(self) -> list[DiscoveredScript]:
        try:
            files = self._drive.list_script_files(limit=self._settings.max_scripts)
        except _DISCOVERY_ERRORS as exc:
            logger.warning("Drive API script search not available: %s", exc)
            return []

        scripts = [
            DiscoveredScript(
                script_id=str(item["id"]),
                name=str(item.get("name") or "Untitled"),
                source=DiscoverySource.DRIVE_API,
            )
            for item in files
        ]
        logger.info("Found %d standalone scripts via Drive API", len(scripts))
        return scripts

    def _discover_bound(self) -> list[DiscoveredScript]:
        try:
            spreadsheets = self._drive.list_spreadsheets()
        except _DISCOVERY_ERRORS as exc:
            logger.warning("Could not search for container-bound scripts: %s", exc)
            return []

        logger.info("Checking %d spreadsheets for bound scripts", len(spreadsheets))
        scripts: list[DiscoveredScript] = []
        for sheet in spreadsheets:
            sheet_id = str(sheet["id"])
            sheet_name = str(sheet.get("name") or "Unknown Spreadsheet")
            try:
                project = self._apps_script.get_project(sheet_id)
            except GoogleAPIError:
                # Most spreadsheets have no bound script, or it is not accessible.
                continue
            script_id = project.get("scriptId")
            if not script_id:
                continue
            scripts.append(
                DiscoveredScript(
                    script_id=str(script_id),
                    name=str(project.get("title") or sheet_name or "Bound Script"),
                    source=DiscoverySource.CONTAINER_BOUND,
                    parent_id=sheet_id,
                    parent_name=sheet_name,
                )
            )
        logger.info("Found %d container-bound scripts", len(scripts))
        return scripts

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync(self, *, db: Session, analyze: bool | None = None) -> ScriptSyncSummary:
        """
        Sync every discovered script into the database.
        """

        should_analyze = self._settings.analyze_after_sync if analyze is None else analyze
        discovered = self.discover_scripts()
        repository = ScriptRepository(db)

        items: list[ScriptSyncItem] = []
        analyses: list[ScriptAnalysis] = []
        synced = 0
        failed = 0

        for script in discovered:
            try:
                files = self._apps_script.get_content(script.script_id)
            except GoogleAPIError as exc:
                logger.warning("Script content unavailable script_id=%s error=%s", script.script_id, exc)
                files = []

            if not files:
                logger.info("Skipping script with no files script_id=%s name=%r", script.script_id, script.name)
                continue

            try:
                analysis = analyze_script(script.script_id, script.name, files) if should_analyze else None
                self._persist(repository, script, files, analysis)
                db.commit()
            except (SQLAlchemyError, ValueError) as exc:
                db.rollback()
                logger.exception("Failed to sync script script_id=%s error=%s", script.script_id, exc)
                failed += 1
                items.append(ScriptSyncItem(script.script_id, script.name, "failed", error=str(exc)))
                continue

            synced += 1
            items.append(ScriptSyncItem(script.script_id, script.name, "synced"))
            if analysis is not None:
                analyses.append(analysis)
            logger.info(
                "Synced script script_id=%s name=%r files=%d functions=%d",
                script.script_id,
                script.name,
                len(files),
                len(analysis.functions) if analysis else 0,
            )

        logger.info("Script sync complete synced=%d failed=%d", synced, failed)
        return ScriptSyncSummary(synced=synced, failed=failed, scripts=items, analyses=analyses)

    def _persist(
        self,
        repository: ScriptRepository,
        discovered: DiscoveredScript,
        files: list[ScriptSourceFile],
        analysis: ScriptAnalysis | None,
    ) -> Script:
        now = datetime.now(timezone.utc)
        is_bound = discovered.source == DiscoverySource.CONTAINER_BOUND and discovered.parent_id
        script = repository.upsert_script(
            script_id=discovered.script_id,
            name=discovered.name,
            parent_file_id=discovered.parent_id,
            parent_file_name=discovered.parent_name,
            parent_file_type=ParentFileType.SPREADSHEET if is_bound else ParentFileType.STANDALONE,
            discovery_source=discovered.source,
            synced_at=now,
        )

        file_rows = [ScriptFile(name=item.name, file_type=item.file_type, content=item.source) for item in files]
        if analysis is None:
            repository.replace_children(script, files=file_rows)
            return script

        script.last_analyzed_at = now
        script.functional_summary = analysis.summary
        script.workflow_steps = list(analysis.workflow_steps)
        script.google_services = list(analysis.google_services)
        script.complexity = analysis.complexity
        script.lines_of_code = analysis.lines_of_code
        repository.replace_children(
            script,
            files=file_rows,
            functions=[
                ScriptFunction(
                    name=item.name,
                    description=item.description,
                    parameters=list(item.parameters),
                    is_public=item.is_public,
                    line_count=item.line_count,
                    file_name=item.file_name,
                )
                for item in analysis.functions
            ],
            triggers=[
                ScriptTrigger(
                    trigger_type=item.trigger_type,
                    function_name=item.function_name,
                    schedule=item.schedule,
                    schedule_description=item.schedule_description,
                    source_event=item.source_event,
                    is_programmatic=item.is_programmatic,
                )
                for item in analysis.triggers
            ],
            external_apis=[
                ScriptExternalApi(
                    url=item.url,
                    base_url=item.base_url,
                    method=item.method,
                    description=item.description,
                    usage_count=item.count,
                    code_location=item.code_location,
                )
                for item in analysis.external_apis
            ],
            connected_files=[
                ScriptConnectedFile(
                    file_id=item.file_id,
                    file_name=item.file_name,
                    file_type=item.file_type,
                    file_url=item.file_url,
                    access_type=item.access_type,
                    extracted_from=item.extracted_from,
                    code_location=item.code_location,
                )
                for item in self._resolve_connected_files(discovered, analysis.connected_files)
            ],
        )
        return script

    def _resolve_connected_files(
        self,
        discovered: DiscoveredScript,
        connected_files: list[ConnectedFileInfo],
    ) -> list[ConnectedFileInfo]:
        """
        Fill in Drive names and links; files that cannot be looked up keep
        what the analyzer extracted.
        """

        resolved: list[ConnectedFileInfo] = []
        for item in connected_files:
            if item.file_id == ACTIVE_FILE_ID:
                resolved.append(replace(item, file_name=discovered.parent_name or item.file_name))
                continue
            try:
                metadata = self._drive.get_file(item.file_id)
            except _DISCOVERY_ERRORS as exc:
                logger.debug("Could not resolve connected file file_id=%s error=%s", item.file_id, exc)
                resolved.append(item)
                continue
            resolved.append(
                replace(
                    item,
                    file_name=metadata.get("name") or item.file_name,
                    file_url=metadata.get("webViewLink") or item.file_url,
                )
            )
        return resolved

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, *, db: Session) -> dict[str, Any]:
        stats = get_db_stats(db)
        return {
            "status": "synced" if stats["totalScripts"] > 0 else "never",
            "database": {
                **stats,
                "lastSync": _isoformat(ScriptRepository(db).last_synced_at()),
            },
        }

    def get_analyses(self, *, db: Session) -> list[dict[str, Any]]:
        """
        Stored analysis summaries for every analyzed script.
        """

        analyses: list[dict[str, Any]] = []
        for script in ScriptRepository(db).list_scripts():
            if script.last_analyzed_at is None:
                continue
            analyses.append(
                {
                    "id": script.id,
                    "name": script.name,
                    "summary": script.functional_summary,
                    "complexity": script.complexity,
                    "linesOfCode": script.lines_of_code,
                    "googleServices": script.google_services or [],
                    "workflowSteps": script.workflow_steps or [],
                    "triggerCount": len(script.triggers),
                    "lastAnalyzed": _isoformat(script.last_analyzed_at),
                }
            )
        return analyses


def get_db_stats(db: Session) -> dict[str, Any]:
    """
    Database-level totals shown on the sync status page.
    """

    scripts = ScriptRepository(db)
    executions = ExecutionRepository(db)
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

    total_executions = executions.count()
    successful = executions.count(statuses=["success"])
    return {
        "totalScripts": scripts.count_scripts(),
        "totalExecutions": total_executions,
        "executionsToday": executions.count(since=today),
        "successRate": round(successful / total_executions * 100) if total_executions else 100,
        "complexityDistribution": scripts.complexity_distribution(),
    }


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


@lru_cache(maxsize=1)
def get_google_token_provider() -> GoogleAccessTokenProvider:
    """
    Shared token provider so every connector reuses one refreshed token.
    """

    return GoogleAccessTokenProvider(
        settings=get_google_api_settings(),
        timeout_seconds=get_external_http_settings().timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_drive_connector() -> DriveConnector:
    return DriveConnector(
        base_url=get_google_api_settings().drive_base_url,
        token_provider=get_google_token_provider(),
        http_settings=get_external_http_settings(),
    )


@lru_cache(maxsize=1)
def get_apps_script_connector() -> AppsScriptConnector:
    return AppsScriptConnector(
        base_url=get_google_api_settings().script_base_url,
        token_provider=get_google_token_provider(),
        http_settings=get_external_http_settings(),
    )


@lru_cache(maxsize=1)
def get_script_sync_service() -> ScriptSyncService:
    """
    Build and cache the content sync service.
    """

    return ScriptSyncService(
        settings=get_script_sync_settings(),
        drive=get_drive_connector(),
        apps_script=get_apps_script_connector(),
    )
