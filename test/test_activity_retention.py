"""
Tests for activity log sanitizing and retention
"""

from datetime import timedelta
from unittest.mock import MagicMock

from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select

from docarchive.models.activity_log import ActivityLog
from docarchive.utils.activity_log import REDACTED, sanitize_details
from docarchive.utils.audit_retention import (
    RETENTION_JOB_ID,
    delete_expired_activity,
    install_retention_policy,
    prune_old_activity_logs,
)
from docarchive.utils.dates import utcnow


async def add_entries(db, *ages_in_days: int) -> None:
    for age in ages_in_days:
        db.add(ActivityLog(action="login", created_at=utcnow() - timedelta(days=age)))
    await db.commit()


class TestSanitizeDetails:
    def test_sensitive_keys_are_redacted(self):
        details = {"email": "a@b.c", "password": "Secret123", "nested": {"Token": "abc", "keep": 1}}

        assert sanitize_details(details) == {
            "email": "a@b.c",
            "password": REDACTED,
            "nested": {"Token": REDACTED, "keep": 1},
        }

    def test_values_become_json_safe(self):
        moment = utcnow()

        assert sanitize_details({"at": moment, "ids": (1, 2)}) == {"at": str(moment), "ids": [1, 2]}

    def test_empty_details(self):
        assert sanitize_details({}) is None
        assert sanitize_details(None) is None


class TestRetention:
    async def test_delete_expired_activity(self, test_db):
        await add_entries(test_db, 1, 10, 120, 400)

        deleted = await delete_expired_activity(90, test_db)

        assert deleted == 2
        remaining = (await test_db.execute(select(ActivityLog))).scalars().all()
        assert len(remaining) == 2

    async def test_prune_uses_own_session(self, test_db):
        await add_entries(test_db, 5, 100)

        assert await prune_old_activity_logs(30) == 1

    async def test_prune_failure_returns_zero(self, test_engine, monkeypatch):
        async def broken(retention_days, db):
            raise RuntimeError("database is locked")

        monkeypatch.setattr("docarchive.utils.audit_retention.delete_expired_activity", broken)

        assert await prune_old_activity_logs(30) == 0

    def test_install_registers_interval_job(self):
        scheduler = MagicMock()

        install_retention_policy(scheduler, retention_days=90, interval_hours=6)

        kwargs = scheduler.add_job.call_args.kwargs
        assert scheduler.add_job.call_args.args == (prune_old_activity_logs,)
        assert kwargs["id"] == RETENTION_JOB_ID
        assert kwargs["args"] == [90]
        assert kwargs["replace_existing"] is True
        assert isinstance(kwargs["trigger"], IntervalTrigger)
        assert kwargs["trigger"].interval == timedelta(hours=6)
