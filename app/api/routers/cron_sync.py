"""
app/api/routers/cron_sync.py

Cron sync trigger endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from app.domain.cron_sync import SyncTrigger
from app.services.cron_sync_service import CronSyncService, get_cron_sync_service

router = APIRouter(tags=["cron-sync"])


@router.api_route("/api/cron/sync", methods=["GET", "POST"])
def cron_sync(
    x_cron_secret: str | None = Header(default=None),
    secret: str | None = Query(default=None, description="Cron secret when headers cannot be set"),
    cron_service: CronSyncService = Depends(get_cron_sync_service),
) -> JSONResponse:
    """
    Run content sync followed by execution-log sync.

    POST behaves exactly like GET so schedulers that only send POST work too.
    """

    trigger = SyncTrigger.from_sources(header_secret=x_cron_secret, query_secret=secret)
    result = cron_service.handle(trigger)
    return JSONResponse(status_code=result.status_code, content=result.body)
