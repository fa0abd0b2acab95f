"""
Authentication Constants

Token and login-policy values resolved from settings.
"""

from datetime import timedelta

from docarchive.config import settings

ALGORITHM = settings.jwt_algorithm
ACCESS_TOKEN_EXPIRE = timedelta(minutes=settings.access_token_expire_minutes)
REFRESH_TOKEN_EXPIRE = timedelta(days=settings.refresh_token_expire_days)

MAX_LOGIN_ATTEMPTS = settings.max_login_attempts
LOCK_DURATION = timedelta(hours=settings.lock_duration_hours)

PASSWORD_RESET_EXPIRE = timedelta(minutes=settings.password_reset_expire_minutes)
EMAIL_VERIFICATION_EXPIRE = timedelta(hours=settings.email_verification_expire_hours)

# Password policy
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$"
