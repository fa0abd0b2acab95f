"""
Two-Factor Authentication Service

TOTP-based 2FA using pyotp. The secret lives on the user row; it is generated
by setup, activated by a successful code check and cleared on disable.
"""

import base64
import logging
from io import BytesIO

import pyotp
import qrcode
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from docarchive.auth import verify_password
from docarchive.config import settings
from docarchive.exceptions import InvalidCredentialsError, InvalidOperationError, ValidationError
from docarchive.models.user import User

logger = logging.getLogger(__name__)


class TwoFactorService:
    """Service for managing two-factor authentication."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def verify_code(secret: str | None, code: str | None) -> bool:
        """Check a TOTP code, accepting the configured number of neighbouring time steps."""
        if not secret or not code:
            return False
        return pyotp.TOTP(secret).verify(code, valid_window=settings.two_factor_valid_window)

    @staticmethod
    def _generate_qr_code(provisioning_uri: str) -> str:
        """Render the provisioning URI as a PNG data URL."""
        image = qrcode.make(provisioning_uri)
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()

    async def setup(self, user: User) -> dict:
        """
        Generate a new secret without enabling 2FA.

        The user confirms with a code from the authenticator app through
        ``enable``.
        """
        if user.two_factor_enabled:
            raise InvalidOperationError("Two-factor authentication is already enabled")

        secret = pyotp.random_base32(32)
        user.two_factor_secret = secret
        await self.db.commit()

        provisioning_uri = pyotp.TOTP(secret).provisioning_uri(
            name=user.email,
            issuer_name=settings.two_factor_app_name,
        )
        logger.info(f"2FA setup initiated for user {user.id}")

        return {
            "secret": secret,
            "otpauthUrl": provisioning_uri,
            "qrCode": self._generate_qr_code(provisioning_uri),
        }

    async def enable(self, user: User, code: str) -> User:
        if user.two_factor_enabled:
            raise InvalidOperationError("Two-factor authentication is already enabled")
        if not user.two_factor_secret:
            raise InvalidOperationError("Two-factor authentication has not been set up")
        if not self.verify_code(user.two_factor_secret, code):
            raise ValidationError("Invalid verification code", field="code")

        user.two_factor_enabled = True
        await self.db.commit()
        logger.info(f"2FA enabled for user {user.id}")
        return user

    async def disable(self, user: User, password: str) -> User:
        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            raise InvalidCredentialsError("Incorrect password")

        user.two_factor_enabled = False
        user.two_factor_secret = None
        await self.db.commit()
        logger.info(f"2FA disabled for user {user.id}")
        return user
