import re
from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, computed_field, field_validator, model_validator

from docarchive.constants.auth import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH, PASSWORD_PATTERN
from docarchive.constants.roles import RoleName, SELF_ASSIGNABLE_ROLES
from docarchive.schemas.common import APIModel
from docarchive.utils.derived import full_name, is_locked

_PASSWORD_RE = re.compile(PASSWORD_PATTERN)


def check_password_strength(value: str) -> str:
    if not _PASSWORD_RE.match(value):
        raise ValueError("Password must contain at least one uppercase letter, one lowercase letter, and one number")
    return value


PasswordField = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


# ============== Responses ==============


class UserBrief(APIModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    avatar: str | None = None

    @computed_field(alias="fullName")
    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)


class UserOut(UserBrief):
    tenant_id: int
    phone: str | None = None
    organization: str | None = None
    bio: str | None = None
    two_factor_enabled: bool
    is_active: bool
    is_verified: bool
    last_login: datetime | None = None
    lock_until: datetime | None = Field(default=None, exclude=True)
    preferences: dict[str, Any] = {}
    storage_used: int
    storage_limit: int
    created_at: datetime
    updated_at: datetime | None = None

    @computed_field(alias="isLocked")
    @property
    def is_locked(self) -> bool:
        return is_locked(self.lock_until)


# ============== Auth requests ==============


class RegisterRequest(APIModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = PasswordField
    role: RoleName = RoleName.PROFESSIONAL
    organization: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=30)
    tenant_id: str | None = Field(None, max_length=100, description="Tenant slug; a new tenant is created when omitted")

    check_password = field_validator("password")(check_password_strength)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, value: str) -> str:
        return value.strip()

    @field_validator("role")
    @classmethod
    def self_assignable(cls, value: RoleName) -> RoleName:
        if value not in SELF_ASSIGNABLE_ROLES:
            raise ValueError("Invalid role")
        return value


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    two_factor_code: str | None = Field(None, min_length=6, max_length=6, pattern=r"^\d{6}$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ForgotPasswordRequest(APIModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ResetPasswordRequest(APIModel):
    password: str = PasswordField

    check_password = field_validator("password")(check_password_strength)


class ChangePasswordRequest(APIModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = PasswordField

    check_new_password = field_validator("new_password")(check_password_strength)


class RefreshTokenRequest(APIModel):
    refresh_token: str = Field(..., min_length=1)


class TwoFactorCodeRequest(APIModel):
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class TwoFactorDisableRequest(APIModel):
    password: str = Field(..., min_length=1)


# ============== Profile requests ==============


class ProfileUpdate(APIModel):
    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, max_length=30)
    organization: str | None = Field(None, max_length=200)
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=500)

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Name cannot be empty")
        return value

    @model_validator(mode="before")
    @classmethod
    def reject_protected_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if "password" in data or "passwordConfirm" in data:
                raise ValueError("This route is not for password updates. Please use /change-password.")
            if "email" in data or "role" in data:
                raise ValueError("Email and role cannot be changed from the profile")
        return data


class NotificationPreferences(APIModel):
    email: bool | None = None
    push: bool | None = None


class PreferencesUpdate(APIModel):
    language: str | None = Field(None, min_length=2, max_length=10)
    timezone: str | None = Field(None, max_length=64)
    notifications: NotificationPreferences | None = None


class AdminUserUpdate(APIModel):
    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, max_length=30)
    organization: str | None = Field(None, max_length=200)
    role: RoleName | None = None
    is_active: bool | None = None
    is_verified: bool | None = None
    storage_limit: int | None = Field(None, ge=0)


class RoleUpdate(APIModel):
    role: RoleName
