from datetime import datetime
from typing import Any

from docarchive.schemas.common import APIModel
from docarchive.schemas.user import UserBrief


class ActivityOut(APIModel):
    id: int
    tenant_id: int | None = None
    user: UserBrief | None = None
    action: str
    resource_type: str
    resource_id: int | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    status: str
    error_message: str | None = None
    created_at: datetime


class TenantOut(APIModel):
    id: int
    slug: str
    name: str
    subdomain: str | None = None
    status: str
    plan: str
    settings: dict[str, Any] = {}
    created_at: datetime
