"""
tests/test_script_metrics_service.py

Unit tests for ScriptMetricsService with a fake Apps Script connector.

Coverage
--------
- Nested and flat metric payloads are flattened to point lists
- Missing series come back empty
- Connector errors propagate
"""

from __future__ import annotations

from typing import Any

import pytest

from app.connectors.base import GoogleAPIError
from app.services.script_metrics_service import ScriptMetricsService, flatten_metrics

POINT = {"value": "3", "startTime": "2026-10-18T00:00:00Z", "endTime": "2026-10-19T00:00:00Z"}


class FakeAppsScript:
    def __init__(self, payload: dict[str, Any] | Exception) -> None:
        self.payload = payload
        self.calls: list[tuple[str, str]] = []

    def get_metrics(self, script_id: str, *, granularity: str = "DAILY") -> dict[str, Any]:
        self.calls.append((script_id, granularity))
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class TestFlattenMetrics:
    def test_nested_payload(self) -> None:
        payload = {
            "metrics": [
                {
                    "activeUsers": [{"values": [POINT]}],
                    "totalExecutions": [{"values": [POINT, {**POINT, "value": "5"}]}],
                }
            ]
        }

        metrics = flatten_metrics(payload)

        assert metrics["activeUsers"] == [POINT]
        assert [item["value"] for item in metrics["totalExecutions"]] == ["3", "5"]
        assert metrics["failedExecutions"] == []

    def test_flat_payload(self) -> None:
        metrics = flatten_metrics({"failedExecutions": [POINT]})

        assert metrics == {"activeUsers": [], "totalExecutions": [], "failedExecutions": [POINT]}

    @pytest.mark.parametrize("payload", [{}, {"metrics": []}, {"metrics": [{"activeUsers": []}]}])
    def test_empty_payloads(self, payload: dict[str, Any]) -> None:
        assert flatten_metrics(payload) == {"activeUsers": [], "totalExecutions": [], "failedExecutions": []}


class TestScriptMetricsService:
    def test_daily_metrics_response(self) -> None:
        apps_script = FakeAppsScript({"metrics": [{"activeUsers": [{"values": [POINT]}]}]})

        result = ScriptMetricsService(apps_script=apps_script).get_metrics("abc")  # type: ignore[arg-type]

        assert apps_script.calls == [("abc", "DAILY")]
        assert result == {
            "scriptId": "abc",
            "metrics": {"activeUsers": [POINT], "totalExecutions": [], "failedExecutions": []},
            "granularity": "DAILY",
        }

    def test_connector_error_propagates(self) -> None:
        error = GoogleAPIError("apps_script: 404 Requested entity was not found.", status_code=404)
        service = ScriptMetricsService(apps_script=FakeAppsScript(error))  # type: ignore[arg-type]

        with pytest.raises(GoogleAPIError) as excinfo:
            service.get_metrics("missing")

        assert excinfo.value.status_code == 404
