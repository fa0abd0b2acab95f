import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from docarchive.database import Base
from docarchive.utils.dates import utcnow


class ActivityAction(str, enum.Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    PASSWORD_CHANGE = "password_change"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFY = "email_verify"
    TWO_FACTOR_ENABLE = "two_factor_enable"
    TWO_FACTOR_DISABLE = "two_factor_disable"
    PROFILE_UPDATE = "profile_update"
    SETTINGS_CHANGE = "settings_change"
    DOCUMENT_UPLOAD = "document_upload"
    DOCUMENT_VIEW = "document_view"
    DOCUMENT_DOWNLOAD = "document_download"
    DOCUMENT_EDIT = "document_edit"
    DOCUMENT_DELETE = "document_delete"
    DOCUMENT_PURGE = "document_purge"
    DOCUMENT_SHARE = "document_share"
    DOCUMENT_UNSHARE = "document_unshare"
    DOCUMENT_VERSION_UPLOAD = "document_version_upload"
    DOCUMENT_VERSION_RESTORE = "document_version_restore"
    COMMENT_ADD = "comment_add"
    COMMENT_EDIT = "comment_edit"
    COMMENT_DELETE = "comment_delete"
    PERMISSION_CHANGE = "permission_change"
    USER_UPDATE = "user_update"
    USER_DEACTIVATE = "user_deactivate"
    USER_ACTIVATE = "user_activate"
    USER_DELETE = "user_delete"
    MESSAGE_CREATE = "message_create"
    MESSAGE_RESPOND = "message_respond"


class ResourceType(str, enum.Enum):
    USER = "user"
    DOCUMENT = "document"
    COMMENT = "comment"
    TENANT = "tenant"
    MESSAGE = "message"
    SYSTEM = "system"


class ActivityStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    action = Column(String(40), nullable=False)
    resource_type = Column(String(20), nullable=False, default=ResourceType.SYSTEM.value)
    resource_id = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    status = Column(String(10), nullable=False, default=ActivityStatus.SUCCESS.value)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    user = relationship("User", lazy="selectin")

    # Indexes for performance optimization
    __table_args__ = (
        Index("idx_activity_tenant_created", "tenant_id", "created_at"),
        Index("idx_activity_user_created", "user_id", "created_at"),
        Index("idx_activity_resource", "resource_type", "resource_id"),
        Index("idx_activity_action_created", "action", "created_at"),
    )
