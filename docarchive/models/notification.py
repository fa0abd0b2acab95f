import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from docarchive.database import Base
from docarchive.utils.dates import utcnow


class NotificationType(str, enum.Enum):
    DOCUMENT_SHARED = "document_shared"
    COMMENT_ADDED = "comment_added"
    DOCUMENT_UPLOADED = "document_uploaded"
    MENTION = "mention"
    SYSTEM = "system"
    SECURITY = "security"
    SUPPORT_RESPONSE = "support_response"
    MESSAGE_RECEIVED = "message_received"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # At most one of these is set
    related_document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    related_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    related_message_id = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    action_url = Column(String(500), nullable=True)
    priority = Column(String(10), nullable=False, default=NotificationPriority.NORMAL.value)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_notification_user_read_created", "user_id", "is_read", "created_at"),
        Index("idx_notification_tenant_user", "tenant_id", "user_id"),
    )
