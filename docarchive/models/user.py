from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from docarchive.config import settings
from docarchive.constants.roles import DEFAULT_ROLE
from docarchive.database import Base
from docarchive.utils.dates import utcnow


def default_preferences() -> dict:
    return {
        "language": "en",
        "timezone": "UTC",
        "notifications": {"email": True, "push": True},
    }


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=DEFAULT_ROLE.value, index=True)

    avatar = Column(String(500), nullable=True)
    phone = Column(String(30), nullable=True)
    organization = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)

    # Two-factor authentication
    two_factor_enabled = Column(Boolean, nullable=False, default=False)
    two_factor_secret = Column(String(64), nullable=True)

    # Account status
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    # Single-use tokens, stored as sha256 hashes
    email_verification_token = Column(String(64), nullable=True, index=True)
    email_verification_expires = Column(DateTime, nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    # Token watermark: tokens issued before this instant are rejected
    password_changed_at = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)

    # Lockout
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)

    preferences = Column(JSON, nullable=False, default=default_preferences)

    storage_used = Column(BigInteger, nullable=False, default=0)
    storage_limit = Column(BigInteger, nullable=False, default=lambda: settings.default_storage_limit)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship("Tenant", lazy="joined")

    __table_args__ = (
        Index("idx_user_tenant_role", "tenant_id", "role"),
        Index("idx_user_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
