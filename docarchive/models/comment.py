"""
Comment models.

Comments thread one level deep: a reply points at a top-level comment on the
same document. Each user holds at most one reaction per comment.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from docarchive.database import Base
from docarchive.utils.dates import utcnow


class ReactionType(str, enum.Enum):
    LIKE = "like"
    LOVE = "love"
    HELPFUL = "helpful"


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Parent comment for replies (null = top-level comment)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    text = Column(Text, nullable=False)

    # Edit tracking
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User", lazy="selectin")
    reactions = relationship("CommentReaction", back_populates="comment", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (
        Index("ix_comments_document_created", "document_id", "created_at"),
        Index("ix_comments_parent_created", "parent_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, document_id={self.document_id}, author_id={self.author_id})>"


class CommentReaction(Base):
    __tablename__ = "comment_reactions"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False, default=ReactionType.LIKE.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    comment = relationship("Comment", back_populates="reactions")

    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_comment_reaction_user"),)
