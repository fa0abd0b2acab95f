"""
Notification Service

In-app notifications. Fan-out helpers run after the triggering action has
committed; their failures are logged and never undo that action.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive import database
from docarchive.exceptions import NotificationNotFoundError
from docarchive.models.notification import Notification, NotificationPriority
from docarchive.models.user import User
from docarchive.utils.dates import utcnow
from docarchive.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)


@dataclass
class NotificationDraft:
    user_id: int
    tenant_id: int
    type: str
    title: str
    message: str
    related_document_id: int | None = None
    related_user_id: int | None = None
    related_message_id: int | None = None
    action_url: str | None = None
    priority: str = NotificationPriority.NORMAL.value

    def __post_init__(self):
        related = [self.related_document_id, self.related_user_id, self.related_message_id]
        if sum(ref is not None for ref in related) > 1:
            raise ValueError("A notification references at most one related entity")


async def dispatch_notifications(drafts: list[NotificationDraft]) -> int:
    """
    Best-effort insert of several notifications on a separate session.

    Runs after the triggering action has committed. Returns the number
    stored, 0 when the insert failed.
    """
    if not drafts:
        return 0
    try:
        async with database.AsyncSessionLocal() as session:
            session.add_all([Notification(**draft.__dict__) for draft in drafts])
            await session.commit()
    except Exception as e:
        logger.error(f"Failed to store {len(drafts)} notification(s): {e}")
        return 0
    return len(drafts)


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _owned(self, user: User):
        return select(Notification).where(
            Notification.user_id == user.id,
            Notification.tenant_id == user.tenant_id,
        )

    async def list_for_user(
        self,
        user: User,
        params: PageParams,
        type: str | None = None,
        is_read: bool | None = None,
    ) -> tuple[list[Notification], int]:
        stmt = self._owned(user)
        if type:
            stmt = stmt.where(Notification.type == type)
        if is_read is not None:
            stmt = stmt.where(Notification.is_read.is_(is_read))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        return await paginate(self.db, stmt, params)

    async def unread_count(self, user: User) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user.id,
                Notification.tenant_id == user.tenant_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def get(self, user: User, notification_id: int) -> Notification:
        result = await self.db.execute(self._owned(user).where(Notification.id == notification_id))
        notification = result.scalars().first()
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    async def mark_read(self, user: User, notification_id: int) -> Notification:
        notification = await self.get(user, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.db.commit()
        return notification

    async def mark_all_read(self, user: User) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.user_id == user.id,
                Notification.tenant_id == user.tenant_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        await self.db.commit()
        return result.rowcount or 0

    async def delete(self, user: User, notification_id: int) -> None:
        notification = await self.get(user, notification_id)
        await self.db.delete(notification)
        await self.db.commit()

    async def delete_all(self, user: User) -> int:
        result = await self.db.execute(
            delete(Notification).where(
                Notification.user_id == user.id,
                Notification.tenant_id == user.tenant_id,
            )
        )
        await self.db.commit()
        return result.rowcount or 0
