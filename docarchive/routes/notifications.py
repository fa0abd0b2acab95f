"""
Notification Routes

In-app notifications of the signed-in user.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import get_current_user
from docarchive.database import get_db
from docarchive.models.notification import NotificationType
from docarchive.models.user import User
from docarchive.schemas import NotificationOut, dump, dump_all
from docarchive.services.notification_service import NotificationService
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    params: PageParams = Depends(page_params),
    type: NotificationType | None = None,
    is_read: bool | None = Query(None, alias="isRead"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    notifications, total = await service.list_for_user(
        current_user, params, type=type.value if type else None, is_read=is_read
    )
    return {
        "status": "success",
        **pagination_meta(total, params, len(notifications)),
        "unreadCount": await service.unread_count(current_user),
        "data": {"notifications": dump_all(NotificationOut, notifications)},
    }


@router.get("/unread-count")
async def unread_count(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    count = await NotificationService(db).unread_count(current_user)
    return {"status": "success", "data": {"unreadCount": count}}


@router.patch("/mark-all-read")
async def mark_all_read(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    updated = await NotificationService(db).mark_all_read(current_user)
    return {"status": "success", "message": f"{updated} notification(s) marked as read", "data": {"updated": updated}}


@router.delete("/all")
async def delete_all_notifications(
    current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    deleted = await NotificationService(db).delete_all(current_user)
    return {"status": "success", "message": f"{deleted} notification(s) deleted", "data": {"deleted": deleted}}


@router.patch("/{notification_id}")
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).mark_read(current_user, notification_id)
    return {"status": "success", "data": {"notification": dump(NotificationOut.model_validate(notification))}}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).delete(current_user, notification_id)
    return {"status": "success", "message": "Notification deleted"}
