"""
Admin Service

Platform-wide administration: dashboard totals, system health, user
moderation and cross-tenant views of users, documents and activity.
"""

import asyncio
import logging
import os
import platform
import resource
import time
from datetime import datetime

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from docarchive.config import settings
from docarchive.constants.roles import is_admin_role
from docarchive.exceptions import InvalidOperationError, StorageError, UserNotFoundError
from docarchive.models.activity_log import ActivityLog
from docarchive.models.comment import Comment, CommentReaction
from docarchive.models.document import Document, DocumentShare, DocumentVersion
from docarchive.models.message import Message
from docarchive.models.notification import Notification
from docarchive.models.tenant import Tenant
from docarchive.models.user import User
from docarchive.services.storage_service import StorageService
from docarchive.services.tenant_service import list_tenants_with_stats
from docarchive.utils.dates import as_naive_utc, days_ago
from docarchive.utils.metrics import update_health_status
from docarchive.utils.pagination import PageParams, apply_sort, like_pattern, paginate

logger = logging.getLogger(__name__)

PROCESS_START_TIME = time.time()
HEALTH_CHECK_TIMEOUT = 5.0

ADMIN_USER_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "lastLogin": User.last_login,
    "email": User.email,
    "lastName": User.last_name,
    "storageUsed": User.storage_used,
}

ADMIN_DOCUMENT_SORT_COLUMNS = {
    "createdAt": Document.created_at,
    "title": Document.title,
    "fileSize": Document.file_size,
    "downloadCount": Document.download_count,
}


def _process_stats() -> dict:
    """CPU, memory and uptime figures for the running process."""
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is kilobytes on Linux and bytes on macOS
    max_rss = usage.ru_maxrss if platform.system() == "Darwin" else usage.ru_maxrss * 1024
    try:
        load = [round(value, 2) for value in os.getloadavg()]
    except OSError:
        load = None

    return {
        "cpu": {
            "count": os.cpu_count(),
            "loadAverage": load,
            "userTimeSeconds": round(usage.ru_utime, 2),
            "systemTimeSeconds": round(usage.ru_stime, 2),
        },
        "memory": {"maxRssBytes": max_rss},
        "uptimeSeconds": round(time.time() - PROCESS_START_TIME, 2),
        "platform": platform.platform(),
        "pythonVersion": platform.python_version(),
        "pid": os.getpid(),
    }


class AdminService:
    def __init__(self, db: AsyncSession, storage: StorageService):
        self.db = db
        self.storage = storage

    async def _count(self, stmt) -> int:
        return (await self.db.execute(stmt)).scalar_one()

    # ------------------------------------------------------------------
    # Dashboard & health
    # ------------------------------------------------------------------

    async def dashboard_stats(self) -> dict:
        week_ago = days_ago(7)

        daily = (
            await self.db.execute(
                select(func.date(User.created_at), func.count(User.id))
                .where(User.created_at >= week_ago)
                .group_by(func.date(User.created_at))
                .order_by(func.date(User.created_at))
            )
        ).all()

        return {
            "users": {
                "total": await self._count(select(func.count(User.id))),
                "active": await self._count(select(func.count(User.id)).where(User.is_active.is_(True))),
                "newLast7Days": await self._count(select(func.count(User.id)).where(User.created_at >= week_ago)),
            },
            "documents": {
                "total": await self._count(select(func.count(Document.id)).where(Document.is_deleted.is_(False))),
                "deleted": await self._count(select(func.count(Document.id)).where(Document.is_deleted.is_(True))),
                "newLast7Days": await self._count(
                    select(func.count(Document.id)).where(Document.created_at >= week_ago)
                ),
                "totalSize": int(
                    await self._count(
                        select(func.coalesce(func.sum(Document.file_size), 0)).where(Document.is_deleted.is_(False))
                    )
                ),
            },
            "tenants": {"total": await self._count(select(func.count(Tenant.id)))},
            "messages": {
                "total": await self._count(select(func.count(Message.id))),
                "unread": await self._count(select(func.count(Message.id)).where(Message.is_read.is_(False))),
            },
            "userGrowth": [{"date": str(day), "count": count} for day, count in daily],
        }

    async def _check_database(self) -> dict:
        start = time.perf_counter()
        try:
            await asyncio.wait_for(self.db.execute(text("SELECT 1")), timeout=HEALTH_CHECK_TIMEOUT)
        except Exception as e:
            update_health_status("database", healthy=False)
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "message": "Database connection failed"}

        update_health_status("database", healthy=True)
        return {"status": "healthy", "responseTimeMs": round((time.perf_counter() - start) * 1000, 2)}

    async def _check_storage(self) -> dict:
        if not self.storage.is_configured():
            return {"status": "not_configured", "message": "Object storage is not configured"}

        start = time.perf_counter()
        try:
            await asyncio.wait_for(run_in_threadpool(self.storage.check_health), timeout=HEALTH_CHECK_TIMEOUT)
        except (StorageError, asyncio.TimeoutError) as e:
            update_health_status("storage", healthy=False)
            logger.error(f"Storage health check failed: {e}")
            return {"status": "unhealthy", "message": "Object storage unreachable"}

        update_health_status("storage", healthy=True)
        return {"status": "healthy", "responseTimeMs": round((time.perf_counter() - start) * 1000, 2)}

    async def system_health(self) -> dict:
        checks = {"database": await self._check_database(), "storage": await self._check_storage()}
        healthy = all(check["status"] in ("healthy", "not_configured") for check in checks.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks,
            "system": _process_stats(),
        }

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def list_users(
        self,
        params: PageParams,
        search: str | None = None,
        role: str | None = None,
        tenant_id: int | None = None,
        is_active: bool | None = None,
        sort_by: str | None = None,
    ) -> tuple[list[User], int]:
        stmt = select(User)
        if search:
            pattern = like_pattern(search)
            stmt = stmt.where(
                or_(
                    func.lower(User.first_name).like(pattern, escape="\\"),
                    func.lower(User.last_name).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                )
            )
        if role:
            stmt = stmt.where(User.role == role)
        if tenant_id:
            stmt = stmt.where(User.tenant_id == tenant_id)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        stmt = apply_sort(stmt, sort_by, ADMIN_USER_SORT_COLUMNS)
        return await paginate(self.db, stmt, params)

    async def get_user(self, user_id: int) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def user_details(self, user_id: int) -> tuple[User, list[Document], list[ActivityLog]]:
        user = await self.get_user(user_id)
        documents = (
            await self.db.execute(
                select(Document)
                .where(Document.owner_id == user.id, Document.is_deleted.is_(False))
                .order_by(Document.created_at.desc())
                .limit(10)
            )
        ).scalars().all()
        activity = (
            await self.db.execute(
                select(ActivityLog)
                .where(ActivityLog.user_id == user.id)
                .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
                .limit(20)
            )
        ).scalars().all()
        return user, list(documents), list(activity)

    async def _get_manageable_user(self, admin: User, user_id: int) -> User:
        if user_id == admin.id:
            raise InvalidOperationError("You cannot perform this action on your own account")
        user = await self.get_user(user_id)
        if is_admin_role(user.role):
            raise InvalidOperationError("Admin accounts cannot be modified this way")
        return user

    async def set_active(self, admin: User, user_id: int, active: bool) -> User:
        if active:
            user = await self.get_user(user_id)
            user.login_attempts = 0
            user.lock_until = None
        else:
            user = await self._get_manageable_user(admin, user_id)
        user.is_active = active
        await self.db.commit()
        logger.info(f"User {user.id} {'activated' if active else 'deactivated'} by admin {admin.id}")
        return await self.get_user(user.id)

    async def set_role(self, admin: User, user_id: int, role: str) -> User:
        if user_id == admin.id:
            raise InvalidOperationError("You cannot change your own role")
        user = await self.get_user(user_id)
        user.role = role
        await self.db.commit()
        logger.info(f"User {user.id} role set to {role} by admin {admin.id}")
        return await self.get_user(user.id)

    async def purge_user(self, admin: User, user_id: int) -> dict:
        """
        Remove a user with everything they own.

        Rows are deleted first; object-store keys of the user's documents are
        removed afterwards and failures are logged and left behind.
        """
        user = await self._get_manageable_user(admin, user_id)

        document_ids = select(Document.id).where(Document.owner_id == user.id)
        keys = set(
            (await self.db.execute(select(Document.storage_key).where(Document.owner_id == user.id))).scalars().all()
        )
        keys.update(
            (
                await self.db.execute(
                    select(DocumentVersion.storage_key).where(DocumentVersion.document_id.in_(document_ids))
                )
            )
            .scalars()
            .all()
        )
        document_count = await self._count(select(func.count(Document.id)).where(Document.owner_id == user.id))

        comment_ids = select(Comment.id).where(
            or_(Comment.author_id == user.id, Comment.document_id.in_(document_ids))
        )
        reply_ids = select(Comment.id).where(Comment.parent_id.in_(comment_ids))

        await self.db.execute(
            delete(CommentReaction).where(
                or_(
                    CommentReaction.user_id == user.id,
                    CommentReaction.comment_id.in_(comment_ids),
                    CommentReaction.comment_id.in_(reply_ids),
                )
            )
        )
        await self.db.execute(delete(Comment).where(Comment.parent_id.in_(comment_ids)))
        await self.db.execute(
            delete(Comment).where(or_(Comment.author_id == user.id, Comment.document_id.in_(document_ids)))
        )
        await self.db.execute(
            delete(DocumentShare).where(
                or_(DocumentShare.user_id == user.id, DocumentShare.document_id.in_(document_ids))
            )
        )
        await self.db.execute(delete(DocumentVersion).where(DocumentVersion.document_id.in_(document_ids)))
        await self.db.execute(delete(Document).where(Document.owner_id == user.id))
        await self.db.execute(delete(Notification).where(Notification.user_id == user.id))
        await self.db.execute(delete(ActivityLog).where(ActivityLog.user_id == user.id))
        await self.db.execute(update(Message).where(Message.responded_by_id == user.id).values(responded_by_id=None))
        await self.db.execute(delete(Message).where(Message.user_id == user.id))
        await self.db.execute(delete(User).where(User.id == user.id))
        await self.db.commit()

        removed = 0
        for key in keys:
            try:
                await run_in_threadpool(self.storage.delete_file, key)
                removed += 1
            except StorageError as e:
                logger.error(f"User {user_id} purged but object {key} remains: {e.message}")

        logger.warning(f"User {user_id} permanently deleted by admin {admin.id}")
        return {"documents": document_count, "objectsRemoved": removed, "objectsFailed": len(keys) - removed}

    # ------------------------------------------------------------------
    # Cross-tenant views
    # ------------------------------------------------------------------

    async def tenants(self) -> list[dict]:
        return await list_tenants_with_stats(self.db)

    async def activities(
        self,
        params: PageParams,
        tenant_id: int | None = None,
        action: str | None = None,
        status: str | None = None,
        user_id: int | None = None,
        search: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> tuple[list[ActivityLog], int]:
        stmt = select(ActivityLog)
        if tenant_id:
            stmt = stmt.where(ActivityLog.tenant_id == tenant_id)
        if action:
            stmt = stmt.where(ActivityLog.action == action)
        if status:
            stmt = stmt.where(ActivityLog.status == status)
        if user_id:
            stmt = stmt.where(ActivityLog.user_id == user_id)
        if search:
            pattern = like_pattern(search)
            matching_users = select(User.id).where(
                or_(
                    func.lower(User.first_name).like(pattern, escape="\\"),
                    func.lower(User.last_name).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                )
            )
            stmt = stmt.where(ActivityLog.user_id.in_(matching_users))
        if start_date:
            stmt = stmt.where(ActivityLog.created_at >= as_naive_utc(start_date))
        if end_date:
            stmt = stmt.where(ActivityLog.created_at <= as_naive_utc(end_date))
        stmt = stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        return await paginate(self.db, stmt, params)

    async def documents(
        self,
        params: PageParams,
        tenant_id: int | None = None,
        owner_id: int | None = None,
        search: str | None = None,
        include_deleted: bool = False,
        sort_by: str | None = None,
    ) -> tuple[list[Document], int]:
        stmt = select(Document)
        if not include_deleted:
            stmt = stmt.where(Document.is_deleted.is_(False))
        if tenant_id:
            stmt = stmt.where(Document.tenant_id == tenant_id)
        if owner_id:
            stmt = stmt.where(Document.owner_id == owner_id)
        if search:
            stmt = stmt.where(func.lower(Document.title).like(like_pattern(search), escape="\\"))
        stmt = apply_sort(stmt, sort_by, ADMIN_DOCUMENT_SORT_COLUMNS)
        return await paginate(self.db, stmt, params)
