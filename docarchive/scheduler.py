from apscheduler.schedulers.asyncio import AsyncIOScheduler

from docarchive.config import settings
from docarchive.utils.audit_retention import install_retention_policy

scheduler = AsyncIOScheduler(timezone="UTC")


def configure_scheduler() -> AsyncIOScheduler:
    install_retention_policy(
        scheduler,
        retention_days=settings.activity_retention_days,
        interval_hours=settings.activity_retention_interval_hours,
    )
    return scheduler
