"""
app/services/script_metrics_service.py

Usage metrics for one script project from the Apps Script API.

Google nests each series as ``metrics[0].<name>[0].values``; a flat
``<name>: [...]`` payload is accepted as well.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from app.connectors import AppsScriptConnector
from app.services.script_sync_service import get_apps_script_connector

logger = logging.getLogger(__name__)

METRICS_GRANULARITY = "DAILY"
METRIC_NAMES = ("activeUsers", "totalExecutions", "failedExecutions")


class ScriptMetricsService:
    def __init__(self, *, apps_script: AppsScriptConnector) -> None:
        self._apps_script = apps_script

    def get_metrics(self, script_id: str) -> dict[str, Any]:
        """
        Fetch daily metrics and flatten each series to a list of
        ``{value, startTime, endTime}`` points.

        Raises GoogleAPIError or GoogleCredentialsError unchanged.
        """

        payload = self._apps_script.get_metrics(script_id, granularity=METRICS_GRANULARITY)
        metrics = flatten_metrics(payload)
        logger.info(
            "Fetched script metrics script_id=%s points=%s",
            script_id,
            sum(len(points) for points in metrics.values()),
        )
        return {"scriptId": script_id, "metrics": metrics, "granularity": METRICS_GRANULARITY}


def flatten_metrics(payload: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
    nested = payload.get("metrics")
    source = nested[0] if isinstance(nested, list) and nested and isinstance(nested[0], dict) else payload
    return {name: _series_points(source.get(name)) for name in METRIC_NAMES}


def _series_points(series: Any) -> list[dict[str, Any]]:
    if not isinstance(series, list) or not series:
        return []
    first = series[0]
    if isinstance(first, dict) and "values" in first:
        values = first.get("values") or []
    else:
        values = series
    return [
        {
            "value": item.get("value"),
            "startTime": item.get("startTime"),
            "endTime": item.get("endTime"),
        }
        for item in values
        if isinstance(item, dict)
    ]


@lru_cache(maxsize=1)
def get_script_metrics_service() -> ScriptMetricsService:
    return ScriptMetricsService(apps_script=get_apps_script_connector())
