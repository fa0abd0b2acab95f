from datetime import datetime

from pydantic import Field

from docarchive.models.message import MessageCategory, MessagePriority, MessageStatus
from docarchive.schemas.common import APIModel
from docarchive.schemas.user import UserBrief


class MessageOut(APIModel):
    id: int
    tenant_id: int
    user: UserBrief
    subject: str
    message: str
    status: str
    priority: str
    category: str
    response: str | None = None
    responded_by: UserBrief | None = None
    responded_at: datetime | None = None
    is_read: bool
    created_at: datetime
    updated_at: datetime | None = None


class MessageCreate(APIModel):
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    priority: MessagePriority = MessagePriority.MEDIUM
    category: MessageCategory = MessageCategory.GENERAL


class MessageUpdate(APIModel):
    status: MessageStatus | None = None
    priority: MessagePriority | None = None
    category: MessageCategory | None = None


class MessageRespond(APIModel):
    response: str = Field(..., min_length=1, max_length=5000)
    status: MessageStatus = MessageStatus.RESOLVED
