"""
Tenant Service

Async helpers for Tenant entities. All functions accept an injected
AsyncSession.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.models.document import Document
from docarchive.models.tenant import Tenant, TenantStatus
from docarchive.models.user import User

logger = logging.getLogger(__name__)


def generate_tenant_slug() -> str:
    return f"tenant_{uuid.uuid4().hex}"


async def get_tenant_by_id(tenant_id: int, db: AsyncSession) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_by_slug(slug: str, db: AsyncSession) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.slug == slug))
    return result.scalars().first()


async def get_or_create_tenant(slug: str | None, db: AsyncSession, name: str | None = None) -> Tenant:
    """
    Resolve a tenant by slug, creating it when it does not exist.

    A missing slug always creates a fresh tenant. The new row is flushed, not
    committed; the caller commits together with its own writes.
    """
    if slug:
        tenant = await get_tenant_by_slug(slug, db)
        if tenant is not None:
            return tenant
    else:
        slug = generate_tenant_slug()

    tenant = Tenant(slug=slug, name=name or slug, status=TenantStatus.ACTIVE.value)
    db.add(tenant)
    await db.flush()
    logger.info("Tenant created: id=%d slug=%s", tenant.id, tenant.slug)
    return tenant


async def list_tenants_with_stats(db: AsyncSession) -> list[dict]:
    """Every tenant with its user, document and storage totals."""
    user_counts = (
        select(
            User.tenant_id.label("tenant_id"),
            func.count(User.id).label("users"),
            func.coalesce(func.sum(User.storage_used), 0).label("storage_used"),
        )
        .group_by(User.tenant_id)
        .subquery()
    )
    document_counts = (
        select(Document.tenant_id.label("tenant_id"), func.count(Document.id).label("documents"))
        .where(Document.is_deleted.is_(False))
        .group_by(Document.tenant_id)
        .subquery()
    )
    stmt = (
        select(
            Tenant,
            func.coalesce(user_counts.c.users, 0),
            func.coalesce(document_counts.c.documents, 0),
            func.coalesce(user_counts.c.storage_used, 0),
        )
        .outerjoin(user_counts, user_counts.c.tenant_id == Tenant.id)
        .outerjoin(document_counts, document_counts.c.tenant_id == Tenant.id)
        .order_by(Tenant.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        {"tenant": tenant, "users": users, "documents": documents, "storage_used": int(storage)}
        for tenant, users, documents, storage in rows
    ]
