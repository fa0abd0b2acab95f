import hashlib
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from docarchive.config import settings
from docarchive.constants.auth import ACCESS_TOKEN_EXPIRE, ALGORITHM, REFRESH_TOKEN_EXPIRE
from docarchive.constants.roles import RoleName
from docarchive.database import get_db
from docarchive.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError, TokenExpiredError
from docarchive.models.user import User
from docarchive.utils.derived import is_locked

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

# Bearer token extraction; missing tokens are reported by get_current_user
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_token(token: str) -> str:
    """sha256 digest under which single-use tokens are stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> tuple[str, str]:
    """Return ``(raw_token, hashed_token)``; only the hash is persisted."""
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)


def _encode(user_id: int, secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    return _encode(user_id, settings.jwt_secret, expires_delta or ACCESS_TOKEN_EXPIRE)


def create_refresh_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    return _encode(user_id, settings.jwt_refresh_secret, expires_delta or REFRESH_TOKEN_EXPIRE)


def create_token_pair(user_id: int) -> dict[str, str]:
    return {"token": create_access_token(user_id), "refreshToken": create_refresh_token(user_id)}


def _decode(token: str, secret: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        logger.info(f"JWT decoding failed: {str(e)}")
        raise InvalidTokenError()

    if not isinstance(payload.get("id"), int):
        raise InvalidTokenError()
    return payload


def decode_access_token(token: str) -> dict:
    return _decode(token, settings.jwt_secret)


def decode_refresh_token(token: str) -> dict:
    return _decode(token, settings.jwt_refresh_secret)


def changed_password_after(user: User, issued_at: int | None) -> bool:
    """True when the password changed after a token issued at ``issued_at`` (epoch seconds)."""
    if user.password_changed_at is None or issued_at is None:
        return False
    changed = int(user.password_changed_at.replace(tzinfo=timezone.utc).timestamp())
    return issued_at < changed


async def resolve_token_user(payload: dict, db: AsyncSession) -> User:
    """Load the token's user and apply the account checks shared by access and refresh tokens."""
    result = await db.execute(select(User).where(User.id == payload["id"]))
    user = result.scalars().first()

    if user is None:
        raise AuthenticationError("The user belonging to this token no longer exists.")
    if not user.is_active:
        raise AuthenticationError("Your account has been deactivated. Please contact support.")
    if is_locked(user.lock_until):
        raise AuthenticationError("Account is temporarily locked due to too many failed login attempts")
    if changed_password_after(user, payload.get("iat")):
        raise AuthenticationError("User recently changed password. Please log in again.")
    return user


async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not token:
        raise AuthenticationError()

    payload = decode_access_token(token)
    user = await resolve_token_user(payload, db)

    request.state.user_id = user.id
    request.state.tenant_id = user.tenant_id
    return user


def require_roles(*roles: RoleName | str) -> Callable[..., User]:
    """Dependency factory rejecting users whose role is not listed."""
    allowed = {role.value if isinstance(role, RoleName) else role for role in roles}

    async def _current_user_with_role(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.warning(f"Role '{user.role}' denied; required one of {sorted(allowed)}")
            raise AuthorizationError()
        return user

    return _current_user_with_role


require_admin = require_roles(RoleName.ADMIN)
