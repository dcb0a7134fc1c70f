"""
app/domain package marker.
"""

from app.domain.cron_sync import (
    AuthMode,
    CronSyncResponse,
    DownstreamFailure,
    DownstreamResult,
    DownstreamSuccess,
    SyncTrigger,
)
from app.domain.execution_sync import ExecutionFetchResult, ExecutionRecord, ExecutionSyncSummary
from app.domain.script_sync import DiscoveredScript, ScriptAnalysis, ScriptSourceFile, ScriptSyncSummary

__all__ = [
    "AuthMode",
    "CronSyncResponse",
    "DiscoveredScript",
    "DownstreamFailure",
    "DownstreamResult",
    "DownstreamSuccess",
    "ExecutionFetchResult",
    "ExecutionRecord",
    "ExecutionSyncSummary",
    "ScriptAnalysis",
    "ScriptSourceFile",
    "ScriptSyncSummary",
    "SyncTrigger",
]
