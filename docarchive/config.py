import logging

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = logging.getLogger(__name__)

INSECURE_SECRETS = {"change-me", "change-me-too", ""}


class Settings(BaseSettings):
    # Application settings
    app_name: str = "DocArchive"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    api_prefix: str = "/api/v1"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./docarchive.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo: bool = False

    # Token settings
    jwt_secret: str = "change-me"
    jwt_refresh_secret: str = "change-me-too"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 30

    bcrypt_rounds: int = 12

    # Login policy
    max_login_attempts: int = 5
    lock_duration_hours: int = 2
    password_reset_expire_minutes: int = 10
    email_verification_expire_hours: int = 24
    two_factor_app_name: str = "DocArchive"
    two_factor_valid_window: int = 2

    # Object storage settings
    s3_endpoint_url: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket_name: str = "docarchive"
    s3_presigned_url_expiry: int = 3600
    s3_connect_timeout: int = 5
    s3_read_timeout: int = 10

    # Mail settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "DocArchive <noreply@docarchive.local>"
    smtp_timeout: int = 10

    # Upload settings
    max_file_size: int = 100 * 1024 * 1024
    image_max_dimension: int = 2000
    image_quality: int = 90
    optimize_images: bool = True
    default_storage_limit: int = 5 * 1024 * 1024 * 1024

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    api_rate_limit: str = "100/15minutes"
    auth_rate_limit: str = "5/15minutes"
    password_reset_rate_limit: str = "3/hour"
    upload_rate_limit: str = "50/hour"

    # Activity log retention
    activity_retention_days: int = 90
    activity_retention_interval_hours: int = 24

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def max_file_size_mb(self) -> int:
        return self.max_file_size // (1024 * 1024)

    def warn_insecure_defaults(self) -> None:
        if self.jwt_secret in INSECURE_SECRETS or self.jwt_refresh_secret in INSECURE_SECRETS:
            logger.warning("JWT secrets are using insecure defaults; set JWT_SECRET and JWT_REFRESH_SECRET")
        if self.jwt_secret == self.jwt_refresh_secret:
            logger.warning("JWT_SECRET and JWT_REFRESH_SECRET should differ")


settings = Settings()
