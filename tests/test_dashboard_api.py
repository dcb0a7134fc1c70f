"""
tests/test_dashboard_api.py

Route tests for the dashboard read API and the sync endpoints, with the
database dependency pointed at in-memory SQLite.

Coverage
--------
- /api/stats health counts, success rate and average duration
- /api/scripts list and detail (404 for unknown ids), camelCase output
- Script detail carries external APIs and connected files
- /api/scripts/{id}/metrics payload and Google error mapping
- /api/executions filters
- /api/sync actions, unknown action 400, sync failure 500
- /api/sync/executions POST and GET
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.config import ExecutionSyncSettings, ManualScript, ScriptSyncSettings
from app.connectors.base import GoogleAPIError
from app.connectors.google_auth import GoogleCredentialsError
from app.domain.script_sync import ScriptSourceFile
from app.main import create_app
from app.services.execution_sync_service import ExecutionSyncService, get_execution_sync_service
from app.services.script_metrics_service import get_script_metrics_service
from app.services.script_sync_service import ScriptSyncService, get_script_sync_service
from db.repositories.execution_repository import ExecutionRepository
from db.repositories.script_repository import ScriptRepository
from db.session import get_db


class FakeAppsScript:
    def __init__(self) -> None:
        self.fail_content = False
        self.source = "function main() {\n  GmailApp.getInboxThreads();\n}"

    def get_project(self, script_id: str) -> dict:
        return {}

    def get_content(self, script_id: str) -> list[ScriptSourceFile]:
        if self.fail_content:
            raise RuntimeError("database exploded")
        return [ScriptSourceFile(name="Code", file_type="SERVER_JS", source=self.source)]

    def list_script_processes(self, script_id: str, *, page_size: int = 50) -> list[dict]:
        return [
            {
                "functionName": "main",
                "startTime": "2026-10-19T08:00:00Z",
                "processStatus": "COMPLETED",
                "duration": "0.5s",
            }
        ]


class FakeDrive:
    def list_script_files(self, *, limit: int = 1000) -> list[dict]:
        return []

    def list_spreadsheets(self, *, limit: int = 1000) -> list[dict]:
        return []

    def get_file(self, file_id: str) -> dict:
        raise GoogleAPIError("drive: 404 File not found", status_code=404)


class FakeMetricsService:
    def __init__(self) -> None:
        self.result: dict | Exception = {
            "scriptId": "mail-1",
            "metrics": {"activeUsers": [], "totalExecutions": [], "failedExecutions": []},
            "granularity": "DAILY",
        }

    def get_metrics(self, script_id: str) -> dict:
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture()
def apps_script() -> FakeAppsScript:
    return FakeAppsScript()


@pytest.fixture()
def metrics_service() -> FakeMetricsService:
    return FakeMetricsService()


@pytest.fixture()
def client(db_session: Session, apps_script: FakeAppsScript, metrics_service: FakeMetricsService) -> Iterator[TestClient]:
    application = create_app(lifespan=False)
    script_service = ScriptSyncService(
        settings=ScriptSyncSettings(manual_scripts=(ManualScript("mail-1", "Mail triage"),), discovery_enabled=False),
        drive=FakeDrive(),  # type: ignore[arg-type]
        apps_script=apps_script,  # type: ignore[arg-type]
    )
    execution_service = ExecutionSyncService(
        settings=ExecutionSyncSettings(),
        apps_script=apps_script,  # type: ignore[arg-type]
    )

    def _get_db() -> Iterator[Session]:
        yield db_session

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_script_sync_service] = lambda: script_service
    application.dependency_overrides[get_execution_sync_service] = lambda: execution_service
    application.dependency_overrides[get_script_metrics_service] = lambda: metrics_service
    yield TestClient(application)
    application.dependency_overrides.clear()


@pytest.fixture()
def seeded(db_session: Session) -> datetime:
    """Three scripts: one healthy, one whose latest run failed, one never run."""
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    scripts = ScriptRepository(db_session)
    for script_id, name in [("a", "Alpha"), ("b", "Beta"), ("c", "Gamma")]:
        scripts.upsert_script(
            script_id=script_id,
            name=name,
            parent_file_id=None,
            parent_file_name=None,
            parent_file_type="standalone",
            discovery_source="config",
        )
    db_session.flush()

    executions = ExecutionRepository(db_session)
    executions.add_execution(
        script_id="a", function_name="run", started_at=today + timedelta(seconds=2), status="success", duration_seconds=2.0
    )
    executions.add_execution(
        script_id="b", function_name="run", started_at=today + timedelta(seconds=1), status="success", duration_seconds=4.0
    )
    executions.add_execution(
        script_id="b",
        function_name="run",
        started_at=today + timedelta(seconds=3),
        status="error",
        error_message="Execution failed",
    )
    db_session.commit()
    return today


# ---------------------------------------------------------------------------
# Dashboard reads
# ---------------------------------------------------------------------------


class TestStats:
    def test_stats(self, client: TestClient, seeded: datetime) -> None:
        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {
            "totalScripts": 3,
            "healthyCount": 2,
            "warningCount": 0,
            "errorCount": 1,
            "executionsToday": 3,
            "successRate": 66.7,
            "avgExecutionTime": 3.0,
        }

    def test_empty_database(self, client: TestClient) -> None:
        body = client.get("/api/stats").json()

        assert body["totalScripts"] == 0
        assert body["successRate"] == 100.0
        assert body["avgExecutionTime"] == 0.0


class TestScripts:
    def test_list(self, client: TestClient, seeded: datetime) -> None:
        body = client.get("/api/scripts").json()

        assert [item["id"] for item in body] == ["a", "b", "c"]
        assert [item["health"] for item in body] == ["healthy", "error", "healthy"]
        assert [item["executionCount"] for item in body] == [1, 2, 0]

    def test_detail(self, client: TestClient) -> None:
        client.post("/api/sync")

        body = client.get("/api/scripts/mail-1").json()

        assert body["name"] == "Mail triage"
        assert body["googleServices"] == ["Gmail"]
        assert [item["name"] for item in body["files"]] == ["Code"]
        assert body["functions"][0]["isPublic"] is True
        assert body["triggers"] == []

    def test_detail_integrations(self, client: TestClient, apps_script: FakeAppsScript) -> None:
        apps_script.source = (
            "function main() {\n"
            "  UrlFetchApp.fetch('https://api.workable.com/spi/v3/jobs');\n"
            "  SpreadsheetApp.openById('roster').getRange('A1').getValue();\n"
            "}"
        )
        client.post("/api/sync")

        body = client.get("/api/scripts/mail-1").json()

        assert body["externalApis"] == [
            {
                "url": "https://api.workable.com/spi/v3",
                "baseUrl": "https://api.workable.com",
                "method": "GET",
                "description": "Workable API",
                "usageCount": 1,
                "codeLocation": "line 2",
            }
        ]
        assert body["connectedFiles"] == [
            {
                "fileId": "roster",
                "fileName": None,
                "fileType": "spreadsheet",
                "fileUrl": "https://docs.google.com/spreadsheets/d/roster",
                "accessType": "read",
                "extractedFrom": "openById",
                "codeLocation": "Code:3",
            }
        ]

    def test_unknown_script(self, client: TestClient) -> None:
        assert client.get("/api/scripts/missing").status_code == 404


class TestExecutions:
    def test_filters(self, client: TestClient, seeded: datetime) -> None:
        assert len(client.get("/api/executions").json()) == 3
        errors = client.get("/api/executions", params={"status": "error"}).json()
        assert [(item["scriptId"], item["errorMessage"]) for item in errors] == [("b", "Execution failed")]
        assert len(client.get("/api/executions", params={"script_id": "b", "limit": 1}).json()) == 1

    def test_limit_is_validated(self, client: TestClient) -> None:
        assert client.get("/api/executions", params={"limit": 0}).status_code == 422


class TestScriptMetrics:
    def test_metrics(self, client: TestClient) -> None:
        response = client.get("/api/scripts/mail-1/metrics")

        assert response.status_code == 200
        assert response.json()["granularity"] == "DAILY"
        assert set(response.json()["metrics"]) == {"activeUsers", "totalExecutions", "failedExecutions"}

    @pytest.mark.parametrize(
        ("error", "status_code", "message"),
        [
            (GoogleAPIError("apps_script: 404 not found", status_code=404), 404, "Script not found"),
            (
                GoogleAPIError("apps_script: 403 forbidden", status_code=403),
                403,
                "Permission denied. Make sure the script.metrics scope is authorized.",
            ),
            (GoogleAPIError("apps_script: 400 bad", status_code=400), 400, "Failed to fetch metrics from Google API"),
            (GoogleCredentialsError("no credentials"), 401, "Failed to obtain access token"),
            (GoogleAPIError("apps_script: request failed after retries."), 500, "Failed to fetch metrics"),
            (RuntimeError("boom"), 500, "Failed to fetch metrics"),
        ],
    )
    def test_error_mapping(
        self,
        client: TestClient,
        metrics_service: FakeMetricsService,
        error: Exception,
        status_code: int,
        message: str,
    ) -> None:
        metrics_service.result = error

        response = client.get("/api/scripts/mail-1/metrics")

        assert response.status_code == status_code
        assert response.json() == {"error": message, "details": str(error)}


# ---------------------------------------------------------------------------
# Sync endpoints
# ---------------------------------------------------------------------------


class TestSyncRoutes:
    def test_post_sync(self, client: TestClient) -> None:
        response = client.post("/api/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["databaseSync"] == {
            "synced": 1,
            "failed": 0,
            "scripts": [{"id": "mail-1", "name": "Mail triage", "status": "synced"}],
        }
        assert body["analyzed"] == 1
        assert body["analyses"][0]["googleServices"] == ["Gmail"]

    def test_post_sync_failure(self, client: TestClient, apps_script: FakeAppsScript) -> None:
        apps_script.fail_content = True

        response = client.post("/api/sync")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to sync scripts", "details": "database exploded"}

    @pytest.mark.parametrize("action", ["status", "analyses", "dbstats"])
    def test_get_actions(self, client: TestClient, action: str) -> None:
        assert client.get("/api/sync", params={"action": action}).status_code == 200

    def test_unknown_action(self, client: TestClient) -> None:
        response = client.get("/api/sync", params={"action": "explode"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unknown action"}

    def test_execution_sync_round_trip(self, client: TestClient) -> None:
        client.post("/api/sync")

        response = client.post("/api/sync/executions")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "synced": 1,
            "failed": 0,
            "scripts": [{"id": "mail-1", "name": "Mail triage", "executionsFetched": 1}],
        }
        stats = client.get("/api/sync/executions").json()
        assert stats["success"] is True
        assert set(stats["stats"]) == {"last24Hours", "last7Days"}
