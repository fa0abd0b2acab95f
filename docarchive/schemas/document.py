from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, computed_field, field_validator, model_validator

from docarchive.models.document import DocumentStatus, DocumentType, SharePermission
from docarchive.schemas.common import APIModel
from docarchive.schemas.user import UserBrief
from docarchive.utils.derived import format_file_size

MAX_TAGS = 20


def split_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags = []
    for tag in value:
        tag = str(tag).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


# ============== Responses ==============


class ShareOut(APIModel):
    user: UserBrief
    permission: str
    shared_at: datetime
    shared_by_id: int | None = None


class VersionOut(APIModel):
    version: int
    file_size: int
    checksum: str | None = None
    changes: str | None = None
    updated_by_id: int | None = None
    created_at: datetime

    @computed_field(alias="fileSizeFormatted")
    @property
    def file_size_formatted(self) -> str:
        return format_file_size(self.file_size)


class DocumentOut(APIModel):
    id: int
    tenant_id: int
    owner: UserBrief
    title: str
    description: str | None = None
    type: str
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    file_extension: str | None = None
    checksum: str | None = None
    tags: list[str] = []
    category: str
    folder: str
    path: str
    version: int
    status: str
    is_shared: bool
    shared_with: list[ShareOut] = Field(default=[], validation_alias="shares")
    is_deleted: bool
    deleted_at: datetime | None = None
    last_accessed_at: datetime | None = None
    access_count: int
    download_count: int
    created_at: datetime
    updated_at: datetime | None = None

    @computed_field(alias="fileSizeFormatted")
    @property
    def file_size_formatted(self) -> str:
        return format_file_size(self.file_size)


class DocumentSummary(APIModel):
    id: int
    title: str
    type: str
    mime_type: str
    file_size: int
    category: str
    owner_id: int
    created_at: datetime


# ============== Requests ==============


class DocumentUploadForm(APIModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    type: DocumentType = DocumentType.GENERAL
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    category: str = Field("Uncategorized", min_length=1, max_length=100)
    folder: str = Field("root", min_length=1, max_length=200)

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> list[str]:
        return split_tags(value)


class DocumentUpdate(APIModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    type: DocumentType | None = None
    tags: list[str] | None = Field(None, max_length=MAX_TAGS)
    category: str | None = Field(None, min_length=1, max_length=100)
    folder: str | None = Field(None, min_length=1, max_length=200)
    status: DocumentStatus | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> list[str] | None:
        return None if value is None else split_tags(value)


class VersionUploadForm(APIModel):
    changes: str | None = Field(None, max_length=500)


class ShareRequest(APIModel):
    user_id: int | None = None
    user_email: EmailStr | None = None
    permission: SharePermission = SharePermission.VIEW
    message: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_recipient(self) -> "ShareRequest":
        if self.user_id is None and self.user_email is None:
            raise ValueError("Either userId or userEmail is required")
        return self
