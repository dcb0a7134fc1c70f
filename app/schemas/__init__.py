"""
app/schemas package marker.
"""

from app.schemas.dashboard import (
    DashboardStatsResponse,
    ExecutionResponse,
    ScriptConnectedFileResponse,
    ScriptDetailResponse,
    ScriptExternalApiResponse,
    ScriptSummaryResponse,
)

__all__ = [
    "DashboardStatsResponse",
    "ExecutionResponse",
    "ScriptConnectedFileResponse",
    "ScriptDetailResponse",
    "ScriptExternalApiResponse",
    "ScriptSummaryResponse",
]
