"""
Activity Log Retention

Prunes ActivityLog rows older than the retention window. Runs as a recurring
APScheduler job, so requests never pay for it.
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive import database
from docarchive.models.activity_log import ActivityLog
from docarchive.utils.dates import days_ago

logger = logging.getLogger(__name__)

RETENTION_JOB_ID = "activity_retention"


async def delete_expired_activity(retention_days: int, db: AsyncSession) -> int:
    result = await db.execute(delete(ActivityLog).where(ActivityLog.created_at < days_ago(retention_days)))
    await db.commit()
    return result.rowcount or 0


async def prune_old_activity_logs(retention_days: int) -> int:
    """
    Delete ActivityLog rows older than ``retention_days``.

    Opens its own session. Returns the number of deleted rows, or 0 when the
    prune fails.
    """
    async with database.AsyncSessionLocal() as db:
        try:
            deleted = await delete_expired_activity(retention_days, db)
        except Exception as exc:
            logger.warning("activity_retention: prune failed: %s", exc)
            await db.rollback()
            return 0

    logger.info("activity_retention: pruned %d rows older than %d days", deleted, retention_days)
    return deleted


def install_retention_policy(scheduler, retention_days: int, interval_hours: int = 24) -> None:
    """
    Register the pruning job with the shared scheduler.

    Args:
        scheduler: The application's AsyncIOScheduler
        retention_days: ActivityLog rows older than this many days are deleted
        interval_hours: How often to run
    """
    scheduler.add_job(
        prune_old_activity_logs,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[retention_days],
        id=RETENTION_JOB_ID,
        replace_existing=True,
        max_instances=1,
    )
    logger.info(
        "activity_retention: installed (retention=%d days, interval=%dh)",
        retention_days,
        interval_hours,
    )
