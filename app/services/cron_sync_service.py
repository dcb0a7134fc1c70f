"""
app/services/cron_sync_service.py

Cron sync orchestrator.

Runs content sync, then execution-log sync, and folds both outcomes into a
single report. Only the content step decides overall success: an execution
sync failure is recorded in the report and never fails the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from app.config import CronSyncSettings, get_cron_sync_settings
from app.connectors.sync_endpoint_client import SyncEndpointClient
from app.domain.cron_sync import (
    CronSyncResponse,
    DownstreamFailure,
    DownstreamResult,
    SyncTrigger,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

UNAUTHORIZED_BODY = {"error": "Unauthorized"}
BUDGET_EXHAUSTED_ERROR = "Time budget exhausted before execution sync"


class SyncEndpointPoster(Protocol):
    def post(self, url: str, *, timeout_seconds: float | None = None) -> DownstreamResult:
        ...


class CronSyncService:
    """
    Stateless orchestrator; safe to share between concurrent requests.
    """

    def __init__(
        self,
        *,
        settings: CronSyncSettings,
        client: SyncEndpointPoster | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._client = client or SyncEndpointClient(timeout_seconds=settings.max_duration_seconds)
        self._clock = clock

    def handle(self, trigger: SyncTrigger) -> CronSyncResponse:
        """
        Authorize the trigger, then run the sync.
        """

        if not self._settings.auth_mode.authorize(trigger.supplied_secret):
            logger.warning("Cron sync rejected: unauthorized trigger")
            return CronSyncResponse(status_code=401, body=dict(UNAUTHORIZED_BODY))
        return self.run()

    def run(self) -> CronSyncResponse:
        """
        Run both sync steps without authorization (in-process callers).
        """

        try:
            return self._run_steps()
        except Exception as exc:
            logger.exception("Cron sync error: %s", exc)
            return CronSyncResponse(
                status_code=500,
                body={
                    "success": False,
                    "error": "Cron sync failed",
                    "details": str(exc) or exc.__class__.__name__,
                    "timestamp": utc_timestamp(),
                },
            )

    def _run_steps(self) -> CronSyncResponse:
        deadline = self._clock() + self._settings.max_duration_seconds

        logger.info("Cron: starting script content sync url=%s", self._settings.content_sync_url)
        content_result = self._client.post(
            self._settings.content_sync_url,
            timeout_seconds=self._settings.max_duration_seconds,
        )

        if isinstance(content_result, DownstreamFailure):
            logger.error(
                "Cron: script content sync failed status=%s details=%s",
                content_result.status_code,
                content_result.body,
            )
            return CronSyncResponse(
                status_code=content_result.status_code,
                body={
                    "success": False,
                    "error": "Script sync failed",
                    "details": content_result.body,
                    "timestamp": utc_timestamp(),
                },
            )

        logger.info("Cron: starting execution logs sync url=%s", self._settings.execution_sync_url)
        execution_payload = self._sync_executions(deadline)

        logger.info("Cron: sync completed")
        return CronSyncResponse(
            status_code=200,
            body={
                "success": True,
                "message": "Cron sync completed",
                "scriptSync": content_result.payload,
                "executionSync": execution_payload,
                "timestamp": utc_timestamp(),
            },
        )

    def _sync_executions(self, deadline: float) -> Any:
        """
        Best-effort execution sync; failures come back as data.

        The call only gets the part of the budget the content step left over.
        """

        remaining = deadline - self._clock()
        if remaining <= 0:
            logger.error("Cron: execution sync skipped, budget exhausted")
            return {"error": BUDGET_EXHAUSTED_ERROR}

        try:
            result = self._client.post(self._settings.execution_sync_url, timeout_seconds=remaining)
        except Exception as exc:
            logger.error("Cron: execution sync error: %s", exc)
            return {"error": str(exc) or "Unknown error"}

        if isinstance(result, DownstreamFailure):
            logger.error(
                "Cron: execution sync failed status=%s details=%s",
                result.status_code,
                result.body,
            )
            if isinstance(result.body, dict):
                return result.body
            return {"error": str(result.body) or f"Execution sync failed with status {result.status_code}"}

        return result.payload


@lru_cache(maxsize=1)
def get_cron_sync_service() -> CronSyncService:
    """
    Build and cache the cron sync orchestrator.
    """

    return CronSyncService(settings=get_cron_sync_settings())
