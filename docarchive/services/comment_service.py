"""
Comment Service

Comments on documents, one level of replies, and one reaction per user per
comment. Reading or writing comments requires view access to the document.
"""

import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.constants.roles import is_admin_role
from docarchive.exceptions import AuthorizationError, CommentNotFoundError, DocumentNotFoundError, ValidationError
from docarchive.models.comment import Comment, CommentReaction
from docarchive.models.document import Document
from docarchive.models.notification import NotificationType
from docarchive.models.user import User
from docarchive.permissions_config.document_access import DocumentAction, can_access_document
from docarchive.services.notification_service import NotificationDraft, dispatch_notifications
from docarchive.utils.dates import utcnow
from docarchive.utils.derived import full_name
from docarchive.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)


class CommentService:
    """Service for managing document comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_document(self, user: User, document_id: int) -> Document:
        result = await self.db.execute(
            select(Document).where(
                Document.id == document_id,
                Document.tenant_id == user.tenant_id,
                Document.is_deleted.is_(False),
            )
        )
        document = result.scalars().first()
        if document is None:
            raise DocumentNotFoundError(document_id)
        if not can_access_document(document, user, DocumentAction.VIEW):
            raise AuthorizationError("You do not have access to this document")
        return document

    async def get_comment(self, user: User, comment_id: int) -> Comment:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment_id, Comment.tenant_id == user.tenant_id)
            .execution_options(populate_existing=True)
        )
        comment = result.scalars().first()
        if comment is None:
            raise CommentNotFoundError(comment_id)
        return comment

    async def list_for_document(
        self, user: User, document_id: int, params: PageParams
    ) -> tuple[list[Comment], dict[int, list[Comment]], int]:
        """
        Page through top-level comments, newest first.

        Returns:
            (top-level comments, replies keyed by parent id, total top-level count)
        """
        await self._get_document(user, document_id)

        stmt = (
            select(Comment)
            .where(
                Comment.document_id == document_id,
                Comment.tenant_id == user.tenant_id,
                Comment.parent_id.is_(None),
            )
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        comments, total = await paginate(self.db, stmt, params)

        replies: dict[int, list[Comment]] = {comment.id: [] for comment in comments}
        if comments:
            result = await self.db.execute(
                select(Comment)
                .where(Comment.parent_id.in_(list(replies)), Comment.tenant_id == user.tenant_id)
                .order_by(Comment.created_at.asc(), Comment.id.asc())
            )
            for reply in result.scalars().all():
                replies[reply.parent_id].append(reply)

        return comments, replies, total

    async def create_comment(self, user: User, document_id: int, text: str, parent_id: int | None = None) -> Comment:
        document = await self._get_document(user, document_id)

        if parent_id is not None:
            parent = await self.get_comment(user, parent_id)
            if parent.document_id != document.id:
                raise ValidationError("Parent comment belongs to a different document", field="parentId")
            if parent.parent_id is not None:
                raise ValidationError("Replies cannot be nested", field="parentId")

        comment = Comment(
            tenant_id=user.tenant_id,
            document_id=document.id,
            author_id=user.id,
            text=text.strip(),
            parent_id=parent_id,
        )
        self.db.add(comment)
        await self.db.commit()
        logger.info(f"Comment {comment.id} added to document {document.id} by user {user.id}")

        if document.owner_id != user.id:
            await dispatch_notifications(
                [
                    NotificationDraft(
                        user_id=document.owner_id,
                        tenant_id=document.tenant_id,
                        type=NotificationType.COMMENT_ADDED.value,
                        title="New comment on your document",
                        message=f'{full_name(user.first_name, user.last_name)} commented on "{document.title}"',
                        related_document_id=document.id,
                        action_url=f"/documents/{document.id}#comment-{comment.id}",
                    )
                ]
            )

        return await self.get_comment(user, comment.id)

    async def get_document_owner(self, document_id: int) -> tuple[Document, User] | None:
        document = await self.db.get(Document, document_id)
        if document is None:
            return None
        return document, document.owner

    async def update_comment(self, user: User, comment_id: int, text: str) -> Comment:
        comment = await self.get_comment(user, comment_id)
        if comment.author_id != user.id:
            raise AuthorizationError("You can only edit your own comments")

        comment.text = text.strip()
        comment.is_edited = True
        comment.edited_at = utcnow()
        await self.db.commit()
        return await self.get_comment(user, comment.id)

    async def delete_comment(self, user: User, comment_id: int) -> int:
        """Delete a comment and its replies. Returns the number of rows removed."""
        comment = await self.get_comment(user, comment_id)
        if comment.author_id != user.id and not is_admin_role(user.role):
            raise AuthorizationError("You can only delete your own comments")

        reply_ids = select(Comment.id).where(Comment.parent_id == comment.id)
        await self.db.execute(
            delete(CommentReaction).where(
                or_(CommentReaction.comment_id == comment.id, CommentReaction.comment_id.in_(reply_ids))
            )
        )
        result = await self.db.execute(
            delete(Comment).where(or_(Comment.id == comment.id, Comment.parent_id == comment.id))
        )
        await self.db.commit()
        return result.rowcount or 0

    async def set_reaction(self, user: User, comment_id: int, reaction_type: str) -> Comment:
        """Add the user's reaction or replace its type; one reaction per user."""
        comment = await self.get_comment(user, comment_id)
        await self._get_document(user, comment.document_id)

        existing = next((r for r in comment.reactions if r.user_id == user.id), None)
        if existing is not None:
            existing.type = reaction_type
        else:
            comment.reactions.append(CommentReaction(user_id=user.id, type=reaction_type))
        await self.db.commit()
        return await self.get_comment(user, comment.id)

    async def remove_reaction(self, user: User, comment_id: int) -> Comment:
        comment = await self.get_comment(user, comment_id)
        existing = next((r for r in comment.reactions if r.user_id == user.id), None)
        if existing is not None:
            comment.reactions.remove(existing)
            await self.db.commit()
        return await self.get_comment(user, comment.id)
