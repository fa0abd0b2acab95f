"""
Document models.

A Document points at its current object-store key; every stored revision is
kept as an append-only DocumentVersion row. Shares grant other users a
permission level on a single document.
"""

import enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from docarchive.database import Base
from docarchive.utils.dates import utcnow


class DocumentType(str, enum.Enum):
    GENERAL = "General"
    CONTRACT = "Contract"
    LEGAL = "Legal"
    ACADEMIC = "Academic"
    FINANCIAL = "Financial"
    PERSONAL = "Personal"
    OTHER = "Other"


class DocumentStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class SharePermission(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default=DocumentType.GENERAL.value)

    # Current file
    file_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(150), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_extension = Column(String(20), nullable=True)
    storage_key = Column(String(500), nullable=False)
    checksum = Column(String(64), nullable=True)

    # Organisation
    tags = Column(JSON, nullable=False, default=list)
    category = Column(String(100), nullable=False, default="Uncategorized")
    folder = Column(String(200), nullable=False, default="root")
    path = Column(String(500), nullable=False, default="/")

    version = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=DocumentStatus.ACTIVE.value)
    is_shared = Column(Boolean, nullable=False, default=False)

    # Soft delete
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Access tracking
    last_accessed_at = Column(DateTime, nullable=True)
    access_count = Column(Integer, nullable=False, default=0)
    download_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", foreign_keys=[owner_id], lazy="selectin")
    shares = relationship("DocumentShare", back_populates="document", cascade="all, delete-orphan", lazy="selectin")
    versions = relationship(
        "DocumentVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DocumentVersion.version",
    )

    __table_args__ = (
        Index("idx_document_tenant_owner_created", "tenant_id", "owner_id", "created_at"),
        Index("idx_document_tenant_deleted", "tenant_id", "is_deleted"),
        Index("idx_document_tenant_category", "tenant_id", "category"),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, title={self.title!r}, version={self.version})>"


class DocumentVersion(Base):
    __tablename__ = "document_versions"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    storage_key = Column(String(500), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    checksum = Column(String(64), nullable=True)
    changes = Column(String(500), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    document = relationship("Document", back_populates="versions")

    __table_args__ = (UniqueConstraint("document_id", "version", name="uq_document_version"),)


class DocumentShare(Base):
    __tablename__ = "document_shares"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(10), nullable=False, default=SharePermission.VIEW.value)
    shared_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    shared_at = Column(DateTime, nullable=False, default=utcnow)

    document = relationship("Document", back_populates="shares")
    user = relationship("User", foreign_keys=[user_id], lazy="selectin")

    __table_args__ = (UniqueConstraint("document_id", "user_id", name="uq_document_share_user"),)
