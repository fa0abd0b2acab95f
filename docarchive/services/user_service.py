"""
User Service

Profile and preference management for the signed-in user plus the
tenant-scoped user administration used by tenant Admins.
"""

import copy
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.exceptions import InvalidOperationError, UserNotFoundError
from docarchive.models.activity_log import ActivityLog
from docarchive.models.comment import Comment
from docarchive.models.document import Document, DocumentShare
from docarchive.models.user import User, default_preferences
from docarchive.schemas.user import AdminUserUpdate, PreferencesUpdate, ProfileUpdate
from docarchive.utils.pagination import PageParams, apply_sort, like_pattern, paginate

logger = logging.getLogger(__name__)

USER_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "lastLogin": User.last_login,
    "firstName": User.first_name,
    "lastName": User.last_name,
    "email": User.email,
    "role": User.role,
}


def merge_preferences(current: dict | None, update: dict) -> dict:
    """Merge a partial preferences update into the stored preferences."""
    merged = copy.deepcopy(current or default_preferences())
    for key, value in update.items():
        if isinstance(value, dict):
            merged[key] = {**merged.get(key, {}), **value}
        else:
            merged[key] = value
    return merged


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _reload(self, user_id: int) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalars().one()

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)
        await self.db.commit()
        return await self._reload(user.id)

    async def update_preferences(self, user: User, data: PreferencesUpdate) -> User:
        user.preferences = merge_preferences(user.preferences, data.model_dump(exclude_none=True))
        await self.db.commit()
        return await self._reload(user.id)

    async def activity(
        self, user: User, params: PageParams, action: str | None = None
    ) -> tuple[list[ActivityLog], int]:
        stmt = select(ActivityLog).where(ActivityLog.user_id == user.id, ActivityLog.tenant_id == user.tenant_id)
        if action:
            stmt = stmt.where(ActivityLog.action == action)
        stmt = stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        return await paginate(self.db, stmt, params)

    async def statistics(self, user: User) -> dict:
        owned = (
            await self.db.execute(
                select(func.count(Document.id), func.coalesce(func.sum(Document.download_count), 0)).where(
                    Document.owner_id == user.id,
                    Document.tenant_id == user.tenant_id,
                    Document.is_deleted.is_(False),
                )
            )
        ).one()
        shared_with_me = (
            await self.db.execute(
                select(func.count(DocumentShare.id))
                .join(Document, Document.id == DocumentShare.document_id)
                .where(
                    DocumentShare.user_id == user.id,
                    Document.tenant_id == user.tenant_id,
                    Document.is_deleted.is_(False),
                )
            )
        ).scalar_one()
        shared_by_me = (
            await self.db.execute(
                select(func.count(Document.id)).where(
                    Document.owner_id == user.id,
                    Document.tenant_id == user.tenant_id,
                    Document.is_deleted.is_(False),
                    Document.is_shared.is_(True),
                )
            )
        ).scalar_one()
        comments = (
            await self.db.execute(
                select(func.count(Comment.id)).where(Comment.author_id == user.id, Comment.tenant_id == user.tenant_id)
            )
        ).scalar_one()

        limit = user.storage_limit or 0
        return {
            "documentsOwned": owned[0],
            "totalDownloads": int(owned[1]),
            "documentsSharedWithMe": shared_with_me,
            "documentsSharedByMe": shared_by_me,
            "comments": comments,
            "storageUsed": user.storage_used or 0,
            "storageLimit": limit,
            "storagePercent": round((user.storage_used or 0) / limit * 100, 2) if limit else 0,
        }

    async def search(self, user: User, term: str, limit: int = 10) -> list[User]:
        """Active users of the caller's tenant whose name or email contains ``term``."""
        pattern = like_pattern(term)
        stmt = (
            select(User)
            .where(
                User.tenant_id == user.tenant_id,
                User.is_active.is_(True),
                User.id != user.id,
                or_(
                    func.lower(User.first_name).like(pattern, escape="\\"),
                    func.lower(User.last_name).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                ),
            )
            .order_by(User.first_name, User.last_name)
            .limit(limit)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    # ------------------------------------------------------------------
    # Tenant administration
    # ------------------------------------------------------------------

    async def list_users(
        self,
        admin: User,
        params: PageParams,
        search: str | None = None,
        role: str | None = None,
        is_active: bool | None = None,
        sort_by: str | None = None,
    ) -> tuple[list[User], int]:
        stmt = select(User).where(User.tenant_id == admin.tenant_id)
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
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        stmt = apply_sort(stmt, sort_by, USER_SORT_COLUMNS)
        return await paginate(self.db, stmt, params)

    async def get_user(self, admin: User, user_id: int) -> User:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id, User.tenant_id == admin.tenant_id)
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def update_user(self, admin: User, user_id: int, data: AdminUserUpdate) -> User:
        user = await self.get_user(admin, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if user.id == admin.id and (changes.get("is_active") is False or "role" in changes):
            raise InvalidOperationError("You cannot change your own role or status")
        for field, value in changes.items():
            setattr(user, field, getattr(value, "value", value))
        await self.db.commit()
        logger.info(f"User {user.id} updated by admin {admin.id}: {sorted(changes)}")
        return await self._reload(user.id)

    async def deactivate_user(self, admin: User, user_id: int) -> User:
        if user_id == admin.id:
            raise InvalidOperationError("You cannot deactivate your own account")
        user = await self.get_user(admin, user_id)
        user.is_active = False
        await self.db.commit()
        logger.info(f"User {user.id} deactivated by admin {admin.id}")
        return user

    async def user_activity(self, admin: User, user_id: int, params: PageParams) -> tuple[list[ActivityLog], int]:
        user = await self.get_user(admin, user_id)
        return await self.activity(user, params)

    async def user_statistics(self, admin: User, user_id: int) -> dict:
        user = await self.get_user(admin, user_id)
        return await self.statistics(user)
