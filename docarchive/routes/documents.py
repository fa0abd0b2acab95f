"""
Document Routes

Upload, listing, sharing, versioning and deletion of documents. Every
endpoint requires authentication; access to a single document is resolved
from ownership, share entries and the caller's role.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import get_current_user, require_admin
from docarchive.database import get_db
from docarchive.dependencies import get_mailer, get_storage
from docarchive.middleware.rate_limit import upload_limit
from docarchive.models.activity_log import ActivityAction, ResourceType
from docarchive.models.user import User
from docarchive.schemas import (
    DocumentOut,
    DocumentUpdate,
    DocumentUploadForm,
    ShareRequest,
    VersionOut,
    VersionUploadForm,
    dump,
    dump_all,
)
from docarchive.schemas.document import DocumentSummary, split_tags
from docarchive.services.document_service import DocumentFilters, DocumentService
from docarchive.services.email_service import EmailService
from docarchive.services.storage_service import StorageService
from docarchive.utils.activity_log import schedule_activity
from docarchive.utils.derived import full_name
from docarchive.utils.pagination import PageParams, page_params, pagination_meta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def get_document_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> DocumentService:
    return DocumentService(db, storage)


def _document(document) -> dict:
    return {"status": "success", "data": {"document": dump(DocumentOut.model_validate(document))}}


@router.get("")
async def list_documents(
    params: PageParams = Depends(page_params),
    search: str | None = Query(None, max_length=200),
    category: str | None = None,
    type: str | None = None,
    tags: str | None = Query(None, description="Comma separated tags"),
    owner: int | None = None,
    folder: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    filters = DocumentFilters(
        search=search,
        category=category,
        type=type,
        tags=split_tags(tags) or None,
        owner_id=owner,
        folder=folder,
        sort_by=sort_by,
    )
    documents, total = await service.list_documents(current_user, params, filters)
    return {
        "status": "success",
        **pagination_meta(total, params, len(documents)),
        "data": {"documents": dump_all(DocumentOut, documents)},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
@upload_limit
async def upload_document(
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str | None = Form(None),
    type: str | None = Form(None),
    tags: str | None = Form(None),
    category: str | None = Form(None),
    folder: str | None = Form(None),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    fields = {"type": type, "category": category, "folder": folder}
    form = DocumentUploadForm(
        title=title,
        description=description,
        tags=tags,
        **{key: value for key, value in fields.items() if value},
    )
    document = await service.upload(current_user, file, form)

    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_UPLOAD.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"title": document.title, "fileSize": document.file_size, "mimeType": document.mime_type},
    )
    return _document(document)


@router.get("/statistics")
async def document_statistics(
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return {"status": "success", "data": await service.statistics(current_user)}


@router.get("/dashboard-stats")
async def dashboard_stats(
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    stats = await service.dashboard_stats(current_user)
    stats["recentDocuments"] = dump_all(DocumentSummary, stats["recentDocuments"])
    return {"status": "success", "data": stats}


@router.get("/{document_id}")
async def get_document(
    document_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document = await service.view(current_user, document_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_VIEW.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
    )
    return _document(document)


@router.patch("/{document_id}")
async def update_document(
    document_id: int,
    data: DocumentUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document = await service.update(current_user, document_id, data)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_EDIT.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"fields": sorted(data.model_dump(exclude_unset=True))},
    )
    return _document(document)


@router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document = await service.soft_delete(current_user, document_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_DELETE.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
    )
    return {"status": "success", "message": "Document deleted successfully"}


@router.delete("/{document_id}/permanent")
async def purge_document(
    document_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    removed = await service.purge(current_user, document_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_PURGE.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document_id,
        details={"objectsRemoved": len(removed)},
    )
    return {"status": "success", "message": "Document permanently deleted"}


@router.get("/{document_id}/download")
async def download_document(
    document_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document, url = await service.download(current_user, document_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_DOWNLOAD.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
    )
    return {
        "status": "success",
        "data": {
            "url": url,
            "fileName": document.original_name,
            "mimeType": document.mime_type,
            "expiresIn": service.storage.url_expiry,
        },
    }


# ============== Sharing ==============


@router.post("/{document_id}/share")
async def share_document(
    document_id: int,
    data: ShareRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    mailer: EmailService = Depends(get_mailer),
):
    document, recipient = await service.share(current_user, document_id, data)

    if (recipient.preferences or {}).get("notifications", {}).get("email", True):
        background_tasks.add_task(
            mailer.send_document_shared_email,
            recipient.email,
            recipient.first_name,
            full_name(current_user.first_name, current_user.last_name),
            document.title,
            document.id,
            data.permission.value,
            data.message,
        )
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_SHARE.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"sharedWith": recipient.id, "permission": data.permission.value},
    )
    return _document(document)


@router.delete("/{document_id}/share/{user_id}")
async def unshare_document(
    document_id: int,
    user_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document = await service.unshare(current_user, document_id, user_id)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_UNSHARE.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"removedUser": user_id},
    )
    return _document(document)


# ============== Versions ==============


@router.get("/{document_id}/versions")
async def list_versions(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document, versions = await service.list_versions(current_user, document_id)
    return {
        "status": "success",
        "results": len(versions),
        "data": {"currentVersion": document.version, "versions": dump_all(VersionOut, versions)},
    }


@router.post("/{document_id}/versions", status_code=status.HTTP_201_CREATED)
@upload_limit
async def upload_version(
    request: Request,
    response: Response,
    document_id: int,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    changes: str | None = Form(None),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    form = VersionUploadForm(changes=changes)
    document = await service.upload_version(current_user, document_id, file, form.changes)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_VERSION_UPLOAD.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"version": document.version},
    )
    return _document(document)


@router.post("/{document_id}/versions/{version}/restore")
async def restore_version(
    document_id: int,
    version: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    document = await service.restore_version(current_user, document_id, version)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.DOCUMENT_VERSION_RESTORE.value,
        user=current_user,
        resource_type=ResourceType.DOCUMENT.value,
        resource_id=document.id,
        details={"restoredVersion": version, "newVersion": document.version},
    )
    return _document(document)
