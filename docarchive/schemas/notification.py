from datetime import datetime

from docarchive.schemas.common import APIModel


class NotificationOut(APIModel):
    id: int
    type: str
    title: str
    message: str
    related_document_id: int | None = None
    related_user_id: int | None = None
    related_message_id: int | None = None
    is_read: bool
    read_at: datetime | None = None
    action_url: str | None = None
    priority: str
    created_at: datetime
