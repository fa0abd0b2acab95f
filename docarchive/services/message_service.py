"""
Message Service

Support tickets from users to the platform administrators. Admins see every
ticket; a regular user only sees the tickets they wrote.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.constants.roles import RoleName, is_admin_role
from docarchive.exceptions import AuthorizationError, MessageNotFoundError
from docarchive.models.message import Message, MessageStatus
from docarchive.models.notification import NotificationPriority, NotificationType
from docarchive.models.user import User
from docarchive.services.notification_service import NotificationDraft, dispatch_notifications
from docarchive.utils.dates import utcnow
from docarchive.utils.derived import full_name
from docarchive.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)

URGENT_PRIORITIES = {"high", "urgent"}


class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, message_id: int) -> Message | None:
        result = await self.db.execute(
            select(Message).where(Message.id == message_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get(self, user: User, message_id: int) -> Message:
        """Fetch a ticket for its author or any Admin."""
        message = await self._load(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        if is_admin_role(user.role):
            return message
        if message.tenant_id != user.tenant_id:
            raise MessageNotFoundError(message_id)
        if message.user_id != user.id:
            raise AuthorizationError("You can only view your own messages")
        return message

    async def create(self, user: User, subject: str, body: str, priority: str, category: str) -> Message:
        message = Message(
            tenant_id=user.tenant_id,
            user_id=user.id,
            subject=subject.strip(),
            message=body,
            priority=priority,
            category=category,
        )
        self.db.add(message)
        await self.db.commit()
        logger.info(f"Support message {message.id} created by user {user.id}")

        result = await self.db.execute(
            select(User.id, User.tenant_id).where(User.role == RoleName.ADMIN.value, User.is_active.is_(True))
        )
        sender = full_name(user.first_name, user.last_name)
        drafts = [
            NotificationDraft(
                user_id=admin_id,
                tenant_id=admin_tenant_id,
                type=NotificationType.MESSAGE_RECEIVED.value,
                title="New support message",
                message=f'{sender} sent "{message.subject}"',
                related_message_id=message.id,
                action_url=f"/admin/messages/{message.id}",
                priority=(
                    NotificationPriority.HIGH.value
                    if priority in URGENT_PRIORITIES
                    else NotificationPriority.NORMAL.value
                ),
            )
            for admin_id, admin_tenant_id in result.all()
        ]
        await dispatch_notifications(drafts)

        return await self._load(message.id)

    async def list_mine(self, user: User, params: PageParams) -> tuple[list[Message], int]:
        stmt = (
            select(Message)
            .where(Message.user_id == user.id, Message.tenant_id == user.tenant_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
        )
        return await paginate(self.db, stmt, params)

    async def list_all(
        self,
        params: PageParams,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        is_read: bool | None = None,
    ) -> tuple[list[Message], int, int]:
        """
        Page through every ticket for the admin inbox.

        Returns:
            (messages, total matching, unread count across all tickets)
        """
        stmt = select(Message)
        if status:
            stmt = stmt.where(Message.status == status)
        if priority:
            stmt = stmt.where(Message.priority == priority)
        if category:
            stmt = stmt.where(Message.category == category)
        if is_read is not None:
            stmt = stmt.where(Message.is_read.is_(is_read))
        stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc())

        messages, total = await paginate(self.db, stmt, params)
        unread = (await self.db.execute(select(func.count(Message.id)).where(Message.is_read.is_(False)))).scalar_one()
        return messages, total, unread

    async def stats(self) -> dict:
        by_status = dict(
            (await self.db.execute(select(Message.status, func.count(Message.id)).group_by(Message.status))).all()
        )
        by_priority = dict(
            (await self.db.execute(select(Message.priority, func.count(Message.id)).group_by(Message.priority))).all()
        )
        by_category = dict(
            (await self.db.execute(select(Message.category, func.count(Message.id)).group_by(Message.category))).all()
        )
        unread = (await self.db.execute(select(func.count(Message.id)).where(Message.is_read.is_(False)))).scalar_one()

        return {
            "total": sum(by_status.values()),
            "unread": unread,
            "byStatus": {status.value: by_status.get(status.value, 0) for status in MessageStatus},
            "byPriority": by_priority,
            "byCategory": by_category,
        }

    async def update(self, user: User, message_id: int, changes: dict) -> Message:
        message = await self.get(user, message_id)
        for field, value in changes.items():
            setattr(message, field, getattr(value, "value", value))
        await self.db.commit()
        return await self._load(message.id)

    async def respond(self, admin: User, message_id: int, response: str, status: str) -> Message:
        message = await self.get(admin, message_id)

        message.response = response
        message.status = status
        message.responded_by_id = admin.id
        message.responded_at = utcnow()
        message.is_read = True
        await self.db.commit()
        logger.info(f"Support message {message.id} answered by admin {admin.id}")

        await dispatch_notifications(
            [
                NotificationDraft(
                    user_id=message.user_id,
                    tenant_id=message.tenant_id,
                    type=NotificationType.SUPPORT_RESPONSE.value,
                    title="Support replied to your message",
                    message=f'Your message "{message.subject}" received a response',
                    related_message_id=message.id,
                    action_url=f"/messages/{message.id}",
                )
            ]
        )

        return await self._load(message.id)

    async def mark_read(self, user: User, message_id: int) -> Message:
        message = await self.get(user, message_id)
        if not message.is_read:
            message.is_read = True
            await self.db.commit()
        return message

    async def delete(self, user: User, message_id: int) -> None:
        message = await self.get(user, message_id)
        await self.db.delete(message)
        await self.db.commit()
