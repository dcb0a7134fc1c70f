"""
app/api/routers/sync.py

Content sync and execution-log sync endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.services.execution_sync_service import ExecutionSyncService, get_execution_sync_service
from app.services.script_sync_service import ScriptSyncService, get_db_stats, get_script_sync_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


@router.post("/api/sync")
def sync_scripts(
    db: Session = Depends(get_db),
    sync_service: ScriptSyncService = Depends(get_script_sync_service),
) -> JSONResponse:
    """
    Discover scripts, fetch their content, analyze and store them.
    """

    try:
        summary = sync_service.sync(db=db)
    except Exception as exc:
        logger.exception("Script sync error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to sync scripts", "details": str(exc) or exc.__class__.__name__},
        )

    return JSONResponse(
        content={
            "success": True,
            "databaseSync": {
                "synced": summary.synced,
                "failed": summary.failed,
                "scripts": [item.to_dict() for item in summary.scripts],
            },
            "analyzed": len(summary.analyses),
            "analyses": [analysis.to_summary_dict() for analysis in summary.analyses],
        }
    )


@router.get("/api/sync")
def sync_status(
    action: str = Query(default="status"),
    db: Session = Depends(get_db),
    sync_service: ScriptSyncService = Depends(get_script_sync_service),
) -> JSONResponse:
    if action == "status":
        return JSONResponse(content=sync_service.get_status(db=db))
    if action == "analyses":
        return JSONResponse(content={"analyses": sync_service.get_analyses(db=db)})
    if action == "dbstats":
        return JSONResponse(content=get_db_stats(db))
    return JSONResponse(status_code=400, content={"error": "Unknown action"})


@router.post("/api/sync/executions")
def sync_executions(
    db: Session = Depends(get_db),
    execution_service: ExecutionSyncService = Depends(get_execution_sync_service),
) -> JSONResponse:
    """
    Pull recent execution history for every stored script.
    """

    try:
        summary = execution_service.sync(db=db)
    except Exception as exc:
        logger.exception("Execution sync error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to sync executions", "details": str(exc) or exc.__class__.__name__},
        )
    return JSONResponse(content={"success": True, **summary.to_dict()})


@router.get("/api/sync/executions")
def execution_stats(
    db: Session = Depends(get_db),
    execution_service: ExecutionSyncService = Depends(get_execution_sync_service),
) -> JSONResponse:
    return JSONResponse(content={"success": True, "stats": execution_service.get_stats(db=db)})
