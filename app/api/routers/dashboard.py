"""
app/api/routers/dashboard.py

Read-only dashboard endpoints: stats, scripts, script metrics and executions.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.connectors import GoogleAPIError, GoogleCredentialsError
from app.schemas.dashboard import (
    DashboardStatsResponse,
    ExecutionResponse,
    ScriptDetailResponse,
    ScriptSummaryResponse,
)
from app.services.dashboard_service import (
    MAX_EXECUTION_LIMIT,
    get_dashboard_stats,
    get_script_detail,
    list_recent_executions,
    list_script_summaries,
)
from app.services.script_metrics_service import ScriptMetricsService, get_script_metrics_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


@router.get("/api/stats", response_model=DashboardStatsResponse)
def dashboard_stats(db: Session = Depends(get_db)) -> DashboardStatsResponse:
    return get_dashboard_stats(db)


@router.get("/api/scripts", response_model=list[ScriptSummaryResponse])
def list_scripts(db: Session = Depends(get_db)) -> list[ScriptSummaryResponse]:
    return list_script_summaries(db)


@router.get("/api/scripts/{script_id}", response_model=ScriptDetailResponse)
def get_script(script_id: str, db: Session = Depends(get_db)) -> ScriptDetailResponse:
    detail = get_script_detail(db, script_id)
    if detail is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Script not found: {script_id}",
        )
    return detail


@router.get("/api/scripts/{script_id}/metrics")
def get_script_metrics(
    script_id: str,
    metrics_service: ScriptMetricsService = Depends(get_script_metrics_service),
) -> JSONResponse:
    """
    Daily active users, total and failed executions from the Apps Script API.
    """

    try:
        return JSONResponse(content=metrics_service.get_metrics(script_id))
    except GoogleCredentialsError as exc:
        logger.error("Script metrics auth error script_id=%s error=%s", script_id, exc)
        return _metrics_error(401, "Failed to obtain access token", exc)
    except GoogleAPIError as exc:
        logger.error("Script metrics error script_id=%s status=%s error=%s", script_id, exc.status_code, exc)
        if exc.status_code == 404:
            return _metrics_error(404, "Script not found", exc)
        if exc.status_code == 403:
            return _metrics_error(403, "Permission denied. Make sure the script.metrics scope is authorized.", exc)
        if exc.status_code is not None:
            return _metrics_error(exc.status_code, "Failed to fetch metrics from Google API", exc)
        return _metrics_error(500, "Failed to fetch metrics", exc)
    except Exception as exc:
        logger.exception("Script metrics error script_id=%s: %s", script_id, exc)
        return _metrics_error(500, "Failed to fetch metrics", exc)


@router.get("/api/executions", response_model=list[ExecutionResponse])
def list_executions(
    script_id: str | None = Query(default=None),
    execution_status: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=MAX_EXECUTION_LIMIT),
    db: Session = Depends(get_db),
) -> list[ExecutionResponse]:
    """
    Most recent executions, newest first.
    """

    return list_recent_executions(db, script_id=script_id, status=execution_status, limit=limit)


def _metrics_error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "details": str(exc) or exc.__class__.__name__},
    )
