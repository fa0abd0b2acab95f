from .activity_log import ActivityAction, ActivityLog, ActivityStatus, ResourceType
from .comment import Comment, CommentReaction, ReactionType
from .document import Document, DocumentShare, DocumentStatus, DocumentType, DocumentVersion, SharePermission
from .message import Message, MessageCategory, MessagePriority, MessageStatus
from .notification import Notification, NotificationPriority, NotificationType
from .tenant import Tenant, TenantPlan, TenantStatus
from .user import User

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "ActivityStatus",
    "Comment",
    "CommentReaction",
    "Document",
    "DocumentShare",
    "DocumentStatus",
    "DocumentType",
    "DocumentVersion",
    "Message",
    "MessageCategory",
    "MessagePriority",
    "MessageStatus",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "ReactionType",
    "ResourceType",
    "SharePermission",
    "Tenant",
    "TenantPlan",
    "TenantStatus",
    "User",
]
