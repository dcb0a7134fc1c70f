"""
app/api/routers package marker.
"""

from app.api.routers.cron_sync import router as cron_sync_router
from app.api.routers.dashboard import router as dashboard_router
from app.api.routers.sync import router as sync_router

__all__ = [
    "cron_sync_router",
    "dashboard_router",
    "sync_router",
]
