"""
Comment Routes

Threaded comments and reactions on documents the caller can view.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import get_current_user
from docarchive.database import get_db
from docarchive.dependencies import get_mailer
from docarchive.models.activity_log import ActivityAction, ResourceType
from docarchive.models.user import User
from docarchive.schemas import CommentCreate, CommentOut, CommentUpdate, ReactionRequest, dump, dump_all
from docarchive.services.comment_service import CommentService
from docarchive.services.email_service import EmailService
from docarchive.utils.activity_log import schedule_activity
from docarchive.utils.derived import full_name
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

router = APIRouter(prefix="/comments", tags=["Comments"])


def _comment(comment) -> dict:
    return {"status": "success", "data": {"comment": dump(CommentOut.model_validate(comment))}}


@router.get("/document/{document_id}")
async def list_comments(
    document_id: int,
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comments, replies, total = await CommentService(db).list_for_document(current_user, document_id, params)

    items = []
    for comment in comments:
        item = dump(CommentOut.model_validate(comment))
        item["replies"] = dump_all(CommentOut, replies.get(comment.id, []))
        items.append(item)

    return {"status": "success", **pagination_meta(total, params, len(items)), "data": {"comments": items}}


@router.post("/document/{document_id}", status_code=status.HTTP_201_CREATED)
async def create_comment(
    document_id: int,
    data: CommentCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    service = CommentService(db)
    comment = await service.create_comment(current_user, document_id, data.text, data.parent_id)

    found = await service.get_document_owner(document_id)
    if found is not None:
        document, owner = found
        wants_email = (owner.preferences or {}).get("notifications", {}).get("email", True)
        if owner.id != current_user.id and wants_email:
            background_tasks.add_task(
                mailer.send_comment_notification_email,
                owner.email,
                owner.first_name,
                full_name(current_user.first_name, current_user.last_name),
                document.title,
                document.id,
                comment.text,
            )

    schedule_activity(
        background_tasks,
        request,
        ActivityAction.COMMENT_ADD.value,
        user=current_user,
        resource_type=ResourceType.COMMENT.value,
        resource_id=comment.id,
        details={"documentId": document_id, "parentId": data.parent_id},
    )
    return _comment(comment)


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await CommentService(db).update_comment(current_user, comment_id, data.text)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.COMMENT_EDIT.value,
        user=current_user,
        resource_type=ResourceType.COMMENT.value,
        resource_id=comment.id,
    )
    return _comment(comment)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await CommentService(db).delete_comment(current_user, comment_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.COMMENT_DELETE.value,
        user=current_user,
        resource_type=ResourceType.COMMENT.value,
        resource_id=comment_id,
        details={"deleted": deleted},
    )
    return {"status": "success", "message": "Comment deleted successfully"}


@router.post("/{comment_id}/reactions")
async def add_reaction(
    comment_id: int,
    data: ReactionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await CommentService(db).set_reaction(current_user, comment_id, data.type.value)
    return _comment(comment)


@router.delete("/{comment_id}/reactions")
async def remove_reaction(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await CommentService(db).remove_reaction(current_user, comment_id)
    return _comment(comment)
