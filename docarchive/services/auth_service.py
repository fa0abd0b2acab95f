"""
Authentication Service

Registration, the login state machine (lockout and TOTP), password reset,
email verification and password changes.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from docarchive.auth import (
    decode_refresh_token,
    generate_token,
    hash_password,
    hash_token,
    resolve_token_user,
    verify_password,
)
from docarchive.config import settings
from docarchive.constants.auth import (
    EMAIL_VERIFICATION_EXPIRE,
    LOCK_DURATION,
    MAX_LOGIN_ATTEMPTS,
    PASSWORD_RESET_EXPIRE,
)
from docarchive.exceptions import (
    AccountLockedError,
    AuthenticationError,
    DuplicateResourceError,
    InvalidCredentialsError,
    ValidationError,
)
from docarchive.models.activity_log import ActivityAction, ActivityStatus, ResourceType
from docarchive.models.user import User
from docarchive.schemas.user import RegisterRequest
from docarchive.services.tenant_service import get_or_create_tenant
from docarchive.services.two_factor_service import TwoFactorService
from docarchive.utils.activity_log import log_activity
from docarchive.utils.dates import utcnow
from docarchive.utils.derived import is_locked
from docarchive.utils.metrics import record_auth_attempt

logger = logging.getLogger(__name__)


@dataclass
class ClientInfo:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass
class LoginResult:
    user: User
    requires_two_factor: bool = False


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Registration & verification
    # ------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> tuple[User, str | None]:
        """
        Create a user, resolving (or creating) its tenant.

        Returns:
            (user, raw verification token or None when verification is skipped)
        """
        if await self.get_user_by_email(data.email):
            raise DuplicateResourceError("User", "email", data.email)

        tenant = await get_or_create_tenant(data.tenant_id, self.db)

        user = User(
            tenant_id=tenant.id,
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            hashed_password=await run_in_threadpool(hash_password, data.password),
            role=data.role.value,
            organization=data.organization,
            phone=data.phone,
            is_verified=not settings.is_production,
        )

        raw_token = None
        if settings.is_production:
            raw_token, hashed = generate_token()
            user.email_verification_token = hashed
            user.email_verification_expires = utcnow() + EMAIL_VERIFICATION_EXPIRE

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateResourceError("User", "email", data.email)
        await self.db.refresh(user)

        logger.info(f"User registered: id={user.id} tenant={tenant.slug}")
        return user, raw_token

    async def verify_email(self, raw_token: str) -> User:
        result = await self.db.execute(
            select(User).where(
                User.email_verification_token == hash_token(raw_token),
                User.email_verification_expires > utcnow(),
            )
        )
        user = result.scalars().first()
        if user is None:
            raise ValidationError("Token is invalid or has expired")

        user.is_verified = True
        user.email_verification_token = None
        user.email_verification_expires = None
        await self.db.commit()
        return user

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def _record_failure(self, user: User | None, reason: str, client: ClientInfo) -> None:
        record_auth_attempt("failure")
        await log_activity(
            ActivityAction.LOGIN.value,
            user_id=user.id if user else None,
            tenant_id=user.tenant_id if user else None,
            resource_type=ResourceType.USER.value,
            resource_id=user.id if user else None,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            status=ActivityStatus.FAILURE.value,
            error_message=reason,
        )

    async def _register_failed_attempt(self, user: User) -> None:
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= MAX_LOGIN_ATTEMPTS and not is_locked(user.lock_until):
            user.lock_until = utcnow() + LOCK_DURATION
            logger.warning(f"User {user.id} locked after {user.login_attempts} failed attempts")
        await self.db.commit()

    async def login(
        self,
        email: str,
        password: str,
        two_factor_code: str | None = None,
        client: ClientInfo | None = None,
    ) -> LoginResult:
        """
        Run the login state machine.

        Raises:
            InvalidCredentialsError: unknown email, wrong password or bad 2FA code
            AccountLockedError: the account is inside its lock window
            AuthenticationError: the account is deactivated
        """
        client = client or ClientInfo()
        user = await self.get_user_by_email(email)
        if user is None:
            await self._record_failure(None, "Unknown email", client)
            raise InvalidCredentialsError()

        if is_locked(user.lock_until):
            await self._record_failure(user, "Account locked", client)
            raise AccountLockedError()

        if user.lock_until is not None:
            # lock expired: start a fresh window
            user.login_attempts = 0
            user.lock_until = None

        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            await self._register_failed_attempt(user)
            await self._record_failure(user, "Invalid password", client)
            raise InvalidCredentialsError()

        if not user.is_active:
            await self.db.commit()
            await self._record_failure(user, "Account deactivated", client)
            raise AuthenticationError("Your account has been deactivated. Please contact support.")

        if user.two_factor_enabled:
            if not two_factor_code:
                await self.db.commit()
                return LoginResult(user=user, requires_two_factor=True)
            if not TwoFactorService.verify_code(user.two_factor_secret, two_factor_code):
                await self._register_failed_attempt(user)
                await self._record_failure(user, "Invalid two-factor code", client)
                raise InvalidCredentialsError("Invalid two-factor authentication code")

        user.login_attempts = 0
        user.lock_until = None
        user.last_login = utcnow()
        await self.db.commit()

        record_auth_attempt("success")
        return LoginResult(user=user)

    async def refresh(self, refresh_token: str) -> User:
        payload = decode_refresh_token(refresh_token)
        return await resolve_token_user(payload, self.db)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    async def _set_password(self, user: User, new_password: str) -> None:
        user.hashed_password = await run_in_threadpool(hash_password, new_password)
        # one second back so tokens issued in this same request stay valid
        user.password_changed_at = utcnow() - timedelta(seconds=1)

    async def forgot_password(self, email: str) -> tuple[User, str] | None:
        """Issue a reset token; returns None for unknown emails so callers can answer generically."""
        user = await self.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return None

        raw_token, hashed = generate_token()
        user.password_reset_token = hashed
        user.password_reset_expires = utcnow() + PASSWORD_RESET_EXPIRE
        await self.db.commit()
        return user, raw_token

    async def reset_password(self, raw_token: str, new_password: str) -> User:
        result = await self.db.execute(
            select(User).where(
                User.password_reset_token == hash_token(raw_token),
                User.password_reset_expires > utcnow(),
            )
        )
        user = result.scalars().first()
        if user is None:
            raise ValidationError("Token is invalid or has expired")

        await self._set_password(user, new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.login_attempts = 0
        user.lock_until = None
        await self.db.commit()
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not await run_in_threadpool(verify_password, current_password, user.hashed_password):
            raise InvalidCredentialsError("Your current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current password", field="newPassword")

        await self._set_password(user, new_password)
        await self.db.commit()
        return user
