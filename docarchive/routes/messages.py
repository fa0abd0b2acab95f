"""
Message Routes

Support tickets. Any user can open a ticket and read their own; the inbox,
responses and ticket management are reserved to Admins.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import get_current_user, require_admin
from docarchive.database import get_db
from docarchive.models.activity_log import ActivityAction, ResourceType
from docarchive.models.message import MessageCategory, MessagePriority, MessageStatus
from docarchive.models.user import User
from docarchive.schemas import MessageCreate, MessageOut, MessageRespond, MessageUpdate, dump, dump_all
from docarchive.services.message_service import MessageService
from docarchive.utils.activity_log import schedule_activity
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

router = APIRouter(prefix="/messages", tags=["Messages"])


def _message(message) -> dict:
    return {"status": "success", "data": {"message": dump(MessageOut.model_validate(message))}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_message(
    data: MessageCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await MessageService(db).create(
        current_user, data.subject, data.message, data.priority.value, data.category.value
    )
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.MESSAGE_CREATE.value,
        user=current_user,
        resource_type=ResourceType.MESSAGE.value,
        resource_id=message.id,
        details={"category": message.category, "priority": message.priority},
    )
    return _message(message)


@router.get("/user")
async def my_messages(
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    messages, total = await MessageService(db).list_mine(current_user, params)
    return {
        "status": "success",
        **pagination_meta(total, params, len(messages)),
        "data": {"messages": dump_all(MessageOut, messages)},
    }


@router.get("/stats")
async def message_stats(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return {"status": "success", "data": await MessageService(db).stats()}


@router.get("")
async def list_messages(
    params: PageParams = Depends(page_params),
    message_status: MessageStatus | None = Query(None, alias="status"),
    priority: MessagePriority | None = None,
    category: MessageCategory | None = None,
    is_read: bool | None = Query(None, alias="isRead"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    messages, total, unread = await MessageService(db).list_all(
        params,
        status=message_status.value if message_status else None,
        priority=priority.value if priority else None,
        category=category.value if category else None,
        is_read=is_read,
    )
    return {
        "status": "success",
        **pagination_meta(total, params, len(messages)),
        "unreadCount": unread,
        "data": {"messages": dump_all(MessageOut, messages)},
    }


@router.get("/{message_id}")
async def get_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _message(await MessageService(db).get(current_user, message_id))


@router.patch("/{message_id}/read")
async def mark_message_read(
    message_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return _message(await MessageService(db).mark_read(current_user, message_id))


@router.patch("/{message_id}")
async def update_message(
    message_id: int,
    data: MessageUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    message = await MessageService(db).update(current_user, message_id, data.model_dump(exclude_none=True))
    return _message(message)


@router.post("/{message_id}/respond")
async def respond_to_message(
    message_id: int,
    data: MessageRespond,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    message = await MessageService(db).respond(current_user, message_id, data.response, data.status.value)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.MESSAGE_RESPOND.value,
        user=current_user,
        resource_type=ResourceType.MESSAGE.value,
        resource_id=message.id,
        details={"status": message.status},
    )
    return _message(message)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await MessageService(db).delete(current_user, message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
