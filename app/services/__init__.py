"""
app/services package marker.
"""

from app.services.cron_sync_service import CronSyncService, get_cron_sync_service
from app.services.execution_sync_service import ExecutionSyncService, get_execution_sync_service
from app.services.script_metrics_service import ScriptMetricsService, get_script_metrics_service
from app.services.script_sync_service import ScriptSyncService, get_script_sync_service

__all__ = [
    "CronSyncService",
    "get_cron_sync_service",
    "ExecutionSyncService",
    "get_execution_sync_service",
    "ScriptMetricsService",
    "get_script_metrics_service",
    "ScriptSyncService",
    "get_script_sync_service",
]
