"""
Tenant model.

Each Tenant is an isolated organisation. Row-level isolation comes from the
``tenant_id`` column carried by every tenant-owned table.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from docarchive.database import Base
from docarchive.utils.dates import utcnow


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class TenantPlan(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


def default_tenant_settings() -> dict:
    return {
        "max_users": 100,
        "max_storage_per_user": 5 * 1024 * 1024 * 1024,
        "max_total_storage": 500 * 1024 * 1024 * 1024,
        "features": {"two_factor_auth": True, "document_sharing": True, "comments": True},
    }


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), nullable=False, unique=True)  # external tenant id, e.g. "tenant_9f2c..."
    name = Column(String(200), nullable=False)
    subdomain = Column(String(100), nullable=True, unique=True)
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value)
    plan = Column(String(20), nullable=False, default=TenantPlan.FREE.value)
    settings = Column(JSON, nullable=False, default=default_tenant_settings)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (Index("idx_tenant_status", "status"),)

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug})>"
