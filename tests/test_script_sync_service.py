"""
tests/test_script_sync_service.py

Tests for ScriptSyncService against fake Google connectors and an in-memory
SQLite database.

Coverage
--------
- Discovery order, de-duplication and the max_scripts cap
- A failing discovery source is skipped
- Sync persists scripts, files, functions, triggers and analysis
- External APIs and connected files are stored; Drive names are resolved
  when available
- Re-sync replaces children instead of duplicating them
- Scripts without files are skipped; one failing script does not stop the run
- Status and analyses read-back
"""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.orm import Session

from app.config import ManualScript, ScriptSyncSettings
from app.connectors.base import GoogleAPIError
from app.domain.script_sync import ScriptSourceFile
from app.services.script_sync_service import ScriptSyncService, get_db_stats
from db.models.script import DiscoverySource, ParentFileType
from db.repositories.script_repository import ScriptRepository

ON_EDIT_CODE = "function onEdit(e) {\n  SpreadsheetApp.getActive();\n}\n\nfunction archive() {\n  DriveApp.getFiles();\n}"
INTEGRATION_CODE = """function pushToSlack() {
  var sheet = SpreadsheetApp.openById("sheet-known").getSheets()[0];
  var rows = sheet.getDataRange().getValues();
  UrlFetchApp.fetch("https://hooks.slack.com/services/T000/B000/XXX", {"method": "POST"});
  var doc = DocumentApp.openById("doc-unknown");
}

function onOpen() {
  SpreadsheetApp.getActiveSpreadsheet().getRange("A1").setValue("ok");
}
"""


class FakeDrive:
    def __init__(
        self,
        *,
        scripts: list[dict[str, Any]] | Exception | None = None,
        spreadsheets: list[dict[str, Any]] | Exception | None = None,
        files: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self._scripts = scripts or []
        self._spreadsheets = spreadsheets or []
        self._files = files or {}

    def list_script_files(self, *, limit: int = 1000) -> list[dict[str, Any]]:
        if isinstance(self._scripts, Exception):
            raise self._scripts
        return self._scripts[:limit]

    def list_spreadsheets(self, *, limit: int = 1000) -> list[dict[str, Any]]:
        if isinstance(self._spreadsheets, Exception):
            raise self._spreadsheets
        return self._spreadsheets[:limit]

    def get_file(self, file_id: str) -> dict[str, Any]:
        if file_id not in self._files:
            raise GoogleAPIError("drive: 404 File not found", status_code=404)
        return self._files[file_id]


class FakeAppsScript:
    def __init__(
        self,
        *,
        projects: dict[str, dict[str, Any]] | None = None,
        contents: dict[str, list[ScriptSourceFile]] | None = None,
    ) -> None:
        self.projects = projects or {}
        self.contents = contents or {}

    def get_project(self, script_id: str) -> dict[str, Any]:
        if script_id not in self.projects:
            raise GoogleAPIError("apps_script: 404 Requested entity was not found.", status_code=404)
        return self.projects[script_id]

    def get_content(self, script_id: str) -> list[ScriptSourceFile]:
        if script_id not in self.contents:
            raise GoogleAPIError("apps_script: 403 The caller does not have permission", status_code=403)
        return self.contents[script_id]


def _code(source: str, name: str = "Code") -> list[ScriptSourceFile]:
    return [ScriptSourceFile(name=name, file_type="SERVER_JS", source=source)]


def _service(
    *,
    drive: FakeDrive | None = None,
    apps_script: FakeAppsScript | None = None,
    **settings: Any,
) -> ScriptSyncService:
    return ScriptSyncService(
        settings=ScriptSyncSettings(**settings),
        drive=drive or FakeDrive(),  # type: ignore[arg-type]
        apps_script=apps_script or FakeAppsScript(),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestDiscovery:
    def test_sources_in_order_first_wins(self) -> None:
        service = _service(
            manual_scripts=(ManualScript("abc", "Manual name"),),
            drive=FakeDrive(
                scripts=[{"id": "abc", "name": "Drive name"}, {"id": "def", "name": "Standalone"}],
                spreadsheets=[{"id": "sheet-1", "name": "Budget"}, {"id": "sheet-2", "name": "No script"}],
            ),
            apps_script=FakeAppsScript(projects={"sheet-1": {"scriptId": "ghi", "title": "Budget Script"}}),
        )

        discovered = service.discover_scripts()

        assert [(item.script_id, item.name, item.source) for item in discovered] == [
            ("abc", "Manual name", DiscoverySource.CONFIG),
            ("def", "Standalone", DiscoverySource.DRIVE_API),
            ("ghi", "Budget Script", DiscoverySource.CONTAINER_BOUND),
        ]
        assert discovered[2].parent_id == "sheet-1"
        assert discovered[2].parent_name == "Budget"

    def test_failing_source_is_skipped(self) -> None:
        service = _service(
            manual_scripts=(ManualScript("abc", "Manual"),),
            drive=FakeDrive(
                scripts=GoogleAPIError("drive: 403 insufficient permissions", status_code=403),
                spreadsheets=[],
            ),
        )

        assert [item.script_id for item in service.discover_scripts()] == ["abc"]

    def test_discovery_disabled_uses_manual_only(self) -> None:
        service = _service(
            manual_scripts=(ManualScript("abc", "Manual"),),
            discovery_enabled=False,
            drive=FakeDrive(scripts=[{"id": "def", "name": "Standalone"}]),
        )

        assert [item.script_id for item in service.discover_scripts()] == ["abc"]

    def test_max_scripts_cap(self) -> None:
        service = _service(
            max_scripts=2,
            use_bound_scripts=False,
            drive=FakeDrive(scripts=[{"id": f"s{index}", "name": f"S{index}"} for index in range(5)]),
        )

        assert [item.script_id for item in service.discover_scripts()] == ["s0", "s1"]


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSync:
    def test_persists_script_and_analysis(self, db_session: Session) -> None:
        service = _service(
            drive=FakeDrive(spreadsheets=[{"id": "sheet-1", "name": "Budget"}]),
            apps_script=FakeAppsScript(
                projects={"sheet-1": {"scriptId": "bound-1", "title": "Budget Script"}},
                contents={"bound-1": _code(ON_EDIT_CODE)},
            ),
        )

        summary = service.sync(db=db_session)

        assert summary.synced == 1
        assert summary.failed == 0
        assert [item.to_dict() for item in summary.scripts] == [
            {"id": "bound-1", "name": "Budget Script", "status": "synced"}
        ]
        assert len(summary.analyses) == 1

        script = ScriptRepository(db_session).get_script("bound-1", with_children=True)
        assert script is not None
        assert script.parent_file_type == ParentFileType.SPREADSHEET
        assert script.parent_file_id == "sheet-1"
        assert script.discovery_source == DiscoverySource.CONTAINER_BOUND
        assert script.complexity == "low"
        assert script.google_services == ["Sheets", "Drive"]
        assert script.functional_summary == (
            "This script runs when a spreadsheet is edited and reads/writes spreadsheet data, manages Drive files."
        )
        assert [item.name for item in script.files] == ["Code"]
        assert sorted(item.name for item in script.functions) == ["archive", "onEdit"]
        assert [(item.trigger_type, item.function_name) for item in script.triggers] == [("on-edit", "onEdit")]

    def test_persists_external_apis_and_connected_files(self, db_session: Session) -> None:
        service = _service(
            drive=FakeDrive(
                spreadsheets=[{"id": "sheet-1", "name": "Budget"}],
                files={"sheet-known": {"name": "Payroll", "webViewLink": "https://docs.google.com/x"}},
            ),
            apps_script=FakeAppsScript(
                projects={"sheet-1": {"scriptId": "bound-1", "title": "Budget Script"}},
                contents={"bound-1": _code(INTEGRATION_CODE)},
            ),
        )

        summary = service.sync(db=db_session)

        assert summary.synced == 1
        script = ScriptRepository(db_session).get_script("bound-1", with_children=True)
        assert script is not None
        assert [(item.url, item.method, item.description) for item in script.external_apis] == [
            ("https://hooks.slack.com/services/T000", "POST", "Slack API")
        ]
        files = {item.file_id: item for item in script.connected_files}
        assert set(files) == {"sheet-known", "doc-unknown", "active"}
        assert files["sheet-known"].file_name == "Payroll"
        assert files["sheet-known"].file_url == "https://docs.google.com/x"
        assert files["doc-unknown"].file_name is None
        assert files["doc-unknown"].file_url == "https://docs.google.com/document/d/doc-unknown"
        assert files["active"].file_name == "Budget"
        assert files["active"].access_type == "read-write"

    def test_resync_replaces_children(self, db_session: Session) -> None:
        apps_script = FakeAppsScript(contents={"abc": _code(INTEGRATION_CODE)})
        service = _service(manual_scripts=(ManualScript("abc", "Archive"),), discovery_enabled=False, apps_script=apps_script)
        service.sync(db=db_session)

        apps_script.contents["abc"] = _code("function runOnce() {\n  Logger.log('x');\n}", name="Main")
        summary = service.sync(db=db_session)
        db_session.expire_all()

        assert summary.synced == 1
        script = ScriptRepository(db_session).get_script("abc", with_children=True)
        assert script is not None
        assert [item.name for item in script.files] == ["Main"]
        assert [item.name for item in script.functions] == ["runOnce"]
        assert script.triggers == []
        assert script.external_apis == []
        assert script.connected_files == []
        assert ScriptRepository(db_session).count_scripts() == 1

    def test_without_analysis_keeps_previous_functions(self, db_session: Session) -> None:
        apps_script = FakeAppsScript(contents={"abc": _code(ON_EDIT_CODE)})
        service = _service(manual_scripts=(ManualScript("abc", "Archive"),), discovery_enabled=False, apps_script=apps_script)
        service.sync(db=db_session)

        summary = service.sync(db=db_session, analyze=False)
        db_session.expire_all()

        assert summary.analyses == []
        script = ScriptRepository(db_session).get_script("abc", with_children=True)
        assert script is not None
        assert sorted(item.name for item in script.functions) == ["archive", "onEdit"]

    def test_scripts_without_files_are_skipped(self, db_session: Session) -> None:
        service = _service(
            manual_scripts=(ManualScript("empty", "Empty"), ManualScript("denied", "Denied")),
            discovery_enabled=False,
            apps_script=FakeAppsScript(contents={"empty": []}),
        )

        summary = service.sync(db=db_session)

        assert summary.synced == 0
        assert summary.failed == 0
        assert summary.scripts == []
        assert ScriptRepository(db_session).count_scripts() == 0

    def test_failing_script_does_not_stop_the_run(self, db_session: Session) -> None:
        duplicate_files = _code("function a() {\n}") + _code("function b() {\n}")
        service = _service(
            manual_scripts=(ManualScript("bad", "Bad"), ManualScript("good", "Good")),
            discovery_enabled=False,
            apps_script=FakeAppsScript(contents={"bad": duplicate_files, "good": _code(ON_EDIT_CODE)}),
        )

        summary = service.sync(db=db_session)

        assert summary.synced == 1
        assert summary.failed == 1
        statuses = {item.script_id: item.status for item in summary.scripts}
        assert statuses == {"bad": "failed", "good": "synced"}
        assert summary.scripts[0].error
        assert ScriptRepository(db_session).get_script("bad") is None
        assert ScriptRepository(db_session).get_script("good") is not None


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class TestStatus:
    def test_never_synced(self, db_session: Session) -> None:
        status = _service().get_status(db=db_session)

        assert status["status"] == "never"
        assert status["database"]["totalScripts"] == 0
        assert status["database"]["lastSync"] is None
        assert status["database"]["successRate"] == 100

    def test_after_sync(self, db_session: Session) -> None:
        service = _service(
            manual_scripts=(ManualScript("abc", "Archive"),),
            discovery_enabled=False,
            apps_script=FakeAppsScript(contents={"abc": _code(ON_EDIT_CODE)}),
        )
        service.sync(db=db_session)

        status = service.get_status(db=db_session)
        analyses = service.get_analyses(db=db_session)

        assert status["status"] == "synced"
        assert status["database"]["lastSync"] is not None
        assert get_db_stats(db_session)["complexityDistribution"] == {"low": 1, "medium": 0, "high": 0}
        assert [item["id"] for item in analyses] == ["abc"]
        assert analyses[0]["triggerCount"] == 1


@pytest.mark.parametrize("analyze", [True, False])
def test_analyze_flag_controls_analyses(db_session: Session, analyze: bool) -> None:
    service = _service(
        manual_scripts=(ManualScript("abc", "Archive"),),
        discovery_enabled=False,
        analyze_after_sync=analyze,
        apps_script=FakeAppsScript(contents={"abc": _code(ON_EDIT_CODE)}),
    )

    summary = service.sync(db=db_session)

    assert len(summary.analyses) == (1 if analyze else 0)
