"""
app/scheduler/jobs.py

APScheduler-based scheduler for the periodic cron sync.

Schedule (UTC)
--------------
  cron_sync: every hour at ``CRON_SYNC_MINUTE`` (default :00)

The job runs the orchestrator in-process. It is already trusted, so the
cron secret is not checked; the downstream sync endpoints are still reached
over HTTP exactly as an external trigger would reach them.

Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.cron_sync_service import get_cron_sync_service

logger = logging.getLogger(__name__)


def run_cron_sync() -> None:
    """
    Run content sync then execution sync and log the report.
    """
    logger.info("Scheduler: cron_sync starting")
    result = get_cron_sync_service().run()
    if result.success:
        logger.info("Scheduler: cron_sync complete status=%s", result.status_code)
    else:
        logger.warning(
            "Scheduler: cron_sync failed status=%s error=%s details=%s",
            result.status_code,
            result.body.get("error"),
            result.body.get("details"),
        )


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register the periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_cron_sync,
        trigger="cron",
        minute=settings.minute,
        id="cron_sync",
        name="Hourly script and execution sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.misfire_grace_seconds,
    )

    return scheduler
