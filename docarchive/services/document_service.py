"""
Document Service

Upload pipeline, listing, access-checked reads and writes, sharing and the
append-only version history. Object-store calls are blocking boto3 calls and
run in Starlette's threadpool.
"""

import hashlib
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from docarchive.config import settings
from docarchive.constants.roles import is_admin_role
from docarchive.exceptions import (
    AuthorizationError,
    DocumentNotFoundError,
    FileTooLargeError,
    FileUploadError,
    InvalidFileTypeError,
    InvalidOperationError,
    StorageError,
    StorageQuotaExceededError,
    UserNotFoundError,
    VersionNotFoundError,
)
from docarchive.models.comment import Comment, CommentReaction
from docarchive.models.document import Document, DocumentShare, DocumentVersion
from docarchive.models.notification import NotificationType
from docarchive.models.user import User
from docarchive.permissions_config.document_access import DocumentAction, can_access_document
from docarchive.schemas.document import DocumentUpdate, DocumentUploadForm, ShareRequest
from docarchive.services.notification_service import NotificationDraft, dispatch_notifications
from docarchive.services.storage_service import StorageService
from docarchive.utils.dates import days_ago, start_of_month, utcnow
from docarchive.utils.derived import full_name
from docarchive.utils.metrics import STORAGE_BYTES_UPLOADED, record_document_operation
from docarchive.utils.pagination import PageParams, apply_sort, like_pattern, paginate

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
    "image/gif": [".gif"],
    "image/webp": [".webp"],
}

ALLOWED_DOCUMENT_TYPES = {
    "application/pdf": [".pdf"],
    "application/msword": [".doc"],
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": [".docx"],
    "application/vnd.ms-excel": [".xls"],
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": [".xlsx"],
    "application/vnd.ms-powerpoint": [".ppt"],
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": [".pptx"],
    "text/plain": [".txt"],
    "text/csv": [".csv"],
    "application/zip": [".zip"],
    "application/x-zip-compressed": [".zip"],
    "application/vnd.rar": [".rar"],
    "application/x-rar-compressed": [".rar"],
}

ALLOWED_MIME_TYPES = {**ALLOWED_IMAGE_TYPES, **ALLOWED_DOCUMENT_TYPES}

READ_CHUNK_SIZE = 1024 * 1024

SORT_COLUMNS = {
    "createdAt": Document.created_at,
    "updatedAt": Document.updated_at,
    "title": Document.title,
    "fileSize": Document.file_size,
    "type": Document.type,
    "category": Document.category,
    "downloadCount": Document.download_count,
    "accessCount": Document.access_count,
}


@dataclass
class PreparedFile:
    original_name: str
    file_name: str
    mime_type: str
    extension: str
    data: bytes
    checksum: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class DocumentFilters:
    search: str | None = None
    category: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    owner_id: int | None = None
    folder: str | None = None
    sort_by: str | None = None


def validate_mime_type(file: UploadFile) -> str:
    if not file.filename:
        raise FileUploadError("Please upload a file")
    mime_type = (file.content_type or "").split(";")[0].strip().lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidFileTypeError(mime_type or None)
    return mime_type


async def read_upload(file: UploadFile, max_size: int) -> bytes:
    """Read the upload body, failing as soon as it exceeds ``max_size`` bytes."""
    buffer = bytearray()
    while True:
        chunk = await file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_size:
            raise FileTooLargeError(max_size // (1024 * 1024))
    if not buffer:
        raise FileUploadError("Uploaded file is empty")
    return bytes(buffer)


def optimize_image(data: bytes, max_dimension: int, quality: int) -> bytes | None:
    """
    Shrink an image to fit ``max_dimension`` and re-encode it as JPEG.

    Returns None when the image already fits or cannot be decoded.
    """
    try:
        with Image.open(BytesIO(data)) as image:
            if image.width <= max_dimension and image.height <= max_dimension:
                return None
            image.thumbnail((max_dimension, max_dimension))
            output = BytesIO()
            image.convert("RGB").save(output, format="JPEG", quality=quality)
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Image optimisation skipped: {e}")
        return None


async def prepare_upload(file: UploadFile) -> PreparedFile:
    mime_type = validate_mime_type(file)
    data = await read_upload(file, settings.max_file_size)

    original_name = Path(file.filename).name
    extension = Path(original_name).suffix.lower()
    file_name = original_name

    if settings.optimize_images and mime_type in ALLOWED_IMAGE_TYPES:
        optimized = await run_in_threadpool(
            optimize_image, data, settings.image_max_dimension, settings.image_quality
        )
        if optimized is not None:
            data = optimized
            mime_type = "image/jpeg"
            extension = ".jpg"
            file_name = f"{Path(original_name).stem}.jpg"

    return PreparedFile(
        original_name=original_name,
        file_name=file_name,
        mime_type=mime_type,
        extension=extension,
        data=data,
        checksum=hashlib.sha256(data).hexdigest(),
    )


class DocumentService:
    def __init__(self, db: AsyncSession, storage: StorageService):
        self.db = db
        self.storage = storage

    # ------------------------------------------------------------------
    # Loading & access
    # ------------------------------------------------------------------

    async def _load(self, tenant_id: int, document_id: int, include_deleted: bool = False) -> Document | None:
        stmt = (
            select(Document)
            .where(Document.id == document_id, Document.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        if not include_deleted:
            stmt = stmt.where(Document.is_deleted.is_(False))
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_for_action(self, user: User, document_id: int, action: DocumentAction) -> Document:
        document = await self._load(user.tenant_id, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        if not can_access_document(document, user, action):
            raise AuthorizationError(f"You do not have {action.value} access to this document")
        return document

    def _accessible(self, user: User):
        """Non-deleted documents of the user's tenant that the user may see."""
        stmt = select(Document).where(Document.tenant_id == user.tenant_id, Document.is_deleted.is_(False))
        if not is_admin_role(user.role):
            shared_ids = select(DocumentShare.document_id).where(DocumentShare.user_id == user.id)
            stmt = stmt.where(or_(Document.owner_id == user.id, Document.id.in_(shared_ids)))
        return stmt

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_documents(
        self, user: User, params: PageParams, filters: DocumentFilters
    ) -> tuple[list[Document], int]:
        stmt = self._accessible(user)

        if filters.search:
            pattern = like_pattern(filters.search)
            stmt = stmt.where(
                or_(
                    func.lower(Document.title).like(pattern, escape="\\"),
                    func.lower(Document.description).like(pattern, escape="\\"),
                    func.lower(cast(Document.tags, String)).like(pattern, escape="\\"),
                )
            )
        if filters.category:
            stmt = stmt.where(Document.category == filters.category)
        if filters.type:
            stmt = stmt.where(Document.type == filters.type)
        if filters.folder:
            stmt = stmt.where(Document.folder == filters.folder)
        if filters.owner_id:
            stmt = stmt.where(Document.owner_id == filters.owner_id)
        if filters.tags:
            stmt = stmt.where(
                or_(*[func.lower(cast(Document.tags, String)).like(f'%"{tag.lower()}"%') for tag in filters.tags])
            )

        stmt = apply_sort(stmt, filters.sort_by, SORT_COLUMNS)
        return await paginate(self.db, stmt, params)

    async def view(self, user: User, document_id: int) -> Document:
        document = await self.get_for_action(user, document_id, DocumentAction.VIEW)
        document.access_count = (document.access_count or 0) + 1
        document.last_accessed_at = utcnow()
        await self.db.commit()
        return document

    async def statistics(self, user: User) -> dict:
        base = self._accessible(user).subquery()

        totals = (
            await self.db.execute(
                select(
                    func.count(base.c.id),
                    func.coalesce(func.sum(base.c.file_size), 0),
                    func.coalesce(func.sum(base.c.download_count), 0),
                    func.coalesce(func.sum(base.c.access_count), 0),
                )
            )
        ).one()

        by_category = (
            await self.db.execute(
                select(base.c.category, func.count(base.c.id), func.coalesce(func.sum(base.c.file_size), 0))
                .group_by(base.c.category)
                .order_by(func.count(base.c.id).desc())
            )
        ).all()

        by_type = (await self.db.execute(select(base.c.type, func.count(base.c.id)).group_by(base.c.type))).all()

        return {
            "overview": {
                "totalDocuments": totals[0],
                "totalSize": int(totals[1]),
                "totalDownloads": int(totals[2]),
                "totalViews": int(totals[3]),
            },
            "byCategory": [
                {"category": category, "count": count, "totalSize": int(size)} for category, count, size in by_category
            ],
            "byType": [{"type": doc_type, "count": count} for doc_type, count in by_type],
        }

    async def dashboard_stats(self, user: User) -> dict:
        base = self._accessible(user).subquery()

        async def _count(*conditions) -> int:
            result = await self.db.execute(select(func.count(base.c.id)).where(*conditions))
            return result.scalar_one()

        shared_with_me = await self.db.execute(
            select(func.count(DocumentShare.id))
            .join(Document, Document.id == DocumentShare.document_id)
            .where(
                DocumentShare.user_id == user.id,
                Document.tenant_id == user.tenant_id,
                Document.is_deleted.is_(False),
            )
        )

        recent = await self.db.execute(self._accessible(user).order_by(Document.created_at.desc()).limit(5))

        return {
            "totalDocuments": await _count(),
            "ownedDocuments": await _count(base.c.owner_id == user.id),
            "sharedWithMe": shared_with_me.scalar_one(),
            "uploadedThisMonth": await _count(base.c.created_at >= start_of_month()),
            "uploadedLast7Days": await _count(base.c.created_at >= days_ago(7)),
            "storageUsed": user.storage_used,
            "storageLimit": user.storage_limit,
            "recentDocuments": list(recent.scalars().all()),
        }

    # ------------------------------------------------------------------
    # Upload & versions
    # ------------------------------------------------------------------

    def _check_quota(self, user: User, size: int) -> None:
        if (user.storage_used or 0) + size > (user.storage_limit or 0):
            raise StorageQuotaExceededError()

    async def _store(self, user: User, prepared: PreparedFile) -> str:
        key = self.storage.generate_storage_key(user.tenant.slug, prepared.file_name)
        await run_in_threadpool(
            self.storage.upload_file,
            key,
            prepared.data,
            prepared.mime_type,
            {"original-name": prepared.original_name, "uploaded-by": str(user.id)},
        )
        STORAGE_BYTES_UPLOADED.inc(prepared.size)
        return key

    async def upload(self, user: User, file: UploadFile, form: DocumentUploadForm) -> Document:
        prepared = await prepare_upload(file)
        self._check_quota(user, prepared.size)
        key = await self._store(user, prepared)

        document = Document(
            tenant_id=user.tenant_id,
            owner_id=user.id,
            title=form.title,
            description=form.description,
            type=form.type.value,
            file_name=prepared.file_name,
            original_name=prepared.original_name,
            mime_type=prepared.mime_type,
            file_size=prepared.size,
            file_extension=prepared.extension,
            storage_key=key,
            checksum=prepared.checksum,
            tags=form.tags,
            category=form.category,
            folder=form.folder,
            path=f"/{form.folder}" if form.folder != "root" else "/",
            version=1,
        )
        document.versions.append(
            DocumentVersion(
                version=1,
                storage_key=key,
                file_size=prepared.size,
                checksum=prepared.checksum,
                changes="Initial upload",
                updated_by_id=user.id,
            )
        )
        self.db.add(document)
        user.storage_used = (user.storage_used or 0) + prepared.size
        await self.db.commit()

        record_document_operation("upload")
        logger.info(f"Document {document.id} uploaded by user {user.id} ({prepared.size} bytes)")
        return await self._load(user.tenant_id, document.id)

    async def list_versions(self, user: User, document_id: int) -> tuple[Document, list[DocumentVersion]]:
        document = await self.get_for_action(user, document_id, DocumentAction.VIEW)
        return document, sorted(document.versions, key=lambda v: v.version, reverse=True)

    def _next_version(self, document: Document) -> int:
        return max([document.version or 0] + [v.version for v in document.versions]) + 1

    async def upload_version(self, user: User, document_id: int, file: UploadFile, changes: str | None) -> Document:
        document = await self.get_for_action(user, document_id, DocumentAction.EDIT)
        prepared = await prepare_upload(file)
        self._check_quota(user, prepared.size)
        key = await self._store(user, prepared)

        number = self._next_version(document)
        document.versions.append(
            DocumentVersion(
                version=number,
                storage_key=key,
                file_size=prepared.size,
                checksum=prepared.checksum,
                changes=changes or f"Uploaded version {number}",
                updated_by_id=user.id,
            )
        )
        document.version = number
        document.storage_key = key
        document.file_size = prepared.size
        document.checksum = prepared.checksum
        document.mime_type = prepared.mime_type
        document.file_name = prepared.file_name
        document.original_name = prepared.original_name
        document.file_extension = prepared.extension
        user.storage_used = (user.storage_used or 0) + prepared.size
        await self.db.commit()

        record_document_operation("version_upload")
        return await self._load(user.tenant_id, document.id)

    async def restore_version(self, user: User, document_id: int, version_number: int) -> Document:
        """Append a new version that points at an earlier version's object."""
        document = await self.get_for_action(user, document_id, DocumentAction.EDIT)
        source = next((v for v in document.versions if v.version == version_number), None)
        if source is None:
            raise VersionNotFoundError(version_number)

        number = self._next_version(document)
        document.versions.append(
            DocumentVersion(
                version=number,
                storage_key=source.storage_key,
                file_size=source.file_size,
                checksum=source.checksum,
                changes=f"Restored version {version_number}",
                updated_by_id=user.id,
            )
        )
        document.version = number
        document.storage_key = source.storage_key
        document.file_size = source.file_size
        document.checksum = source.checksum
        await self.db.commit()

        record_document_operation("version_restore")
        logger.info(f"Document {document.id} restored to version {version_number} as version {number}")
        return await self._load(user.tenant_id, document.id)

    # ------------------------------------------------------------------
    # Updates & deletion
    # ------------------------------------------------------------------

    async def update(self, user: User, document_id: int, data: DocumentUpdate) -> Document:
        document = await self.get_for_action(user, document_id, DocumentAction.EDIT)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(document, field, value.value if hasattr(value, "value") else value)
        if "folder" in changes:
            document.path = f"/{document.folder}" if document.folder != "root" else "/"
        await self.db.commit()
        return await self._load(user.tenant_id, document.id)

    async def soft_delete(self, user: User, document_id: int) -> Document:
        document = await self.get_for_action(user, document_id, DocumentAction.DELETE)
        document.is_deleted = True
        document.deleted_at = utcnow()
        document.deleted_by_id = user.id
        await self.db.commit()
        record_document_operation("delete")
        return document

    async def purge(self, user: User, document_id: int) -> list[str]:
        """
        Permanently remove a document (soft-deleted or not) and its objects.

        The database row goes first. Object deletions that fail afterwards are
        logged and left behind. Returns the keys that were removed.
        """
        document = await self._load(user.tenant_id, document_id, include_deleted=True)
        if document is None:
            raise DocumentNotFoundError(document_id)

        sizes: dict[str, int] = {document.storage_key: document.file_size}
        for version in document.versions:
            sizes.setdefault(version.storage_key, version.file_size)

        owner = await self.db.get(User, document.owner_id)
        if owner is not None:
            owner.storage_used = max(0, (owner.storage_used or 0) - sum(sizes.values()))

        comment_ids = select(Comment.id).where(Comment.document_id == document.id)
        await self.db.execute(delete(CommentReaction).where(CommentReaction.comment_id.in_(comment_ids)))
        await self.db.execute(delete(Comment).where(Comment.document_id == document.id))
        await self.db.delete(document)
        await self.db.commit()

        removed = []
        for key in sizes:
            try:
                await run_in_threadpool(self.storage.delete_file, key)
                removed.append(key)
            except StorageError as e:
                logger.error(f"Document {document_id} purged but object {key} remains: {e.message}")

        record_document_operation("purge")
        return removed

    async def download(self, user: User, document_id: int) -> tuple[Document, str]:
        document = await self.get_for_action(user, document_id, DocumentAction.VIEW)
        document.download_count = (document.download_count or 0) + 1
        await self.db.commit()

        url = await run_in_threadpool(self.storage.generate_download_url, document.storage_key, document.original_name)
        record_document_operation("download")
        return document, url

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def _find_recipient(self, user: User, request: ShareRequest) -> User:
        stmt = select(User).where(User.tenant_id == user.tenant_id, User.is_active.is_(True))
        if request.user_id is not None:
            stmt = stmt.where(User.id == request.user_id)
        else:
            stmt = stmt.where(User.email == request.user_email.lower())
        recipient = (await self.db.execute(stmt)).scalars().first()
        if recipient is None:
            raise UserNotFoundError(request.user_id or request.user_email)
        return recipient

    async def share(self, user: User, document_id: int, request: ShareRequest) -> tuple[Document, User]:
        document = await self.get_for_action(user, document_id, DocumentAction.SHARE)
        recipient = await self._find_recipient(user, request)
        if recipient.id == document.owner_id:
            raise InvalidOperationError("Cannot share a document with its owner")

        existing = next((s for s in document.shares if s.user_id == recipient.id), None)
        if existing is not None:
            existing.permission = request.permission.value
            existing.shared_by_id = user.id
            existing.shared_at = utcnow()
        else:
            document.shares.append(
                DocumentShare(user_id=recipient.id, permission=request.permission.value, shared_by_id=user.id)
            )
        document.is_shared = True
        await self.db.commit()

        await dispatch_notifications(
            [
                NotificationDraft(
                    user_id=recipient.id,
                    tenant_id=recipient.tenant_id,
                    type=NotificationType.DOCUMENT_SHARED.value,
                    title="Document shared with you",
                    message=f'{full_name(user.first_name, user.last_name)} shared "{document.title}" with you',
                    related_document_id=document.id,
                    action_url=f"/documents/{document.id}",
                )
            ]
        )
        record_document_operation("share")
        return await self._load(user.tenant_id, document.id), recipient

    async def unshare(self, user: User, document_id: int, target_user_id: int) -> Document:
        document = await self.get_for_action(user, document_id, DocumentAction.SHARE)
        share = next((s for s in document.shares if s.user_id == target_user_id), None)
        if share is None:
            raise UserNotFoundError(target_user_id)

        document.shares.remove(share)
        document.is_shared = bool(document.shares)
        await self.db.commit()
        record_document_operation("unshare")
        return await self._load(user.tenant_id, document.id)
