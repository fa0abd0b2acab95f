import logging
import re
import time
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docarchive.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(file_name: str) -> str:
    name = _UNSAFE_CHARS.sub("_", file_name.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]).strip("._")
    return name[:150] or "file"


class StorageService:
    """S3-compatible object store client. One instance is built at startup and injected."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        url_expiry: int = 3600,
        connect_timeout: int = 5,
        read_timeout: int = 10,
    ):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.url_expiry = url_expiry
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._client = None

    @classmethod
    def from_settings(cls, settings) -> "StorageService":
        return cls(
            bucket=settings.s3_bucket_name,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            region=settings.s3_region,
            url_expiry=settings.s3_presigned_url_expiry,
            connect_timeout=settings.s3_connect_timeout,
            read_timeout=settings.s3_read_timeout,
        )

    def is_configured(self) -> bool:
        return bool(self.bucket and self.access_key and self.secret_key)

    def _get_client(self):
        if not self.is_configured():
            raise StorageError("Object storage is not configured. Set S3_BUCKET_NAME, S3_ACCESS_KEY and S3_SECRET_KEY.")
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=self.connect_timeout,
                    read_timeout=self.read_timeout,
                    retries={"max_attempts": 1},
                ),
            )
        return self._client

    @staticmethod
    def generate_storage_key(tenant_key: str, file_name: str) -> str:
        timestamp = int(time.time() * 1000)
        unique = uuid.uuid4().hex[:8]
        return f"{tenant_key}/documents/{timestamp}-{unique}-{safe_file_name(file_name)}"

    def upload_file(self, key: str, body: bytes, content_type: str, metadata: dict[str, str] | None = None) -> str:
        try:
            self._get_client().put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                ServerSideEncryption="AES256",
                Metadata=metadata or {},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload of {key} failed: {e}")
            raise StorageError("Failed to upload file")
        logger.info(f"Stored object {key} ({len(body)} bytes)")
        return key

    def download_file(self, key: str) -> bytes:
        try:
            response = self._get_client().get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Download of {key} failed: {e}")
            raise StorageError("Failed to download file")

    def delete_file(self, key: str) -> None:
        try:
            self._get_client().delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Delete of {key} failed: {e}")
            raise StorageError("Failed to delete file")
        logger.info(f"Deleted object {key}")

    def copy_file(self, source_key: str, destination_key: str) -> str:
        try:
            self._get_client().copy_object(
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": source_key},
                Key=destination_key,
                ServerSideEncryption="AES256",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Copy of {source_key} failed: {e}")
            raise StorageError("Failed to copy file")
        return destination_key

    def list_files(self, prefix: str = "") -> list[dict]:
        try:
            response = self._get_client().list_objects_v2(Bucket=self.bucket, Prefix=prefix)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Listing {prefix!r} failed: {e}")
            raise StorageError("Failed to list files")
        return [
            {"key": item["Key"], "size": item["Size"], "last_modified": item["LastModified"]}
            for item in response.get("Contents", [])
        ]

    def generate_download_url(self, key: str, file_name: str | None = None, expires_in: int | None = None) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        if file_name:
            params["ResponseContentDisposition"] = f'attachment; filename="{safe_file_name(file_name)}"'
        try:
            url: str = self._get_client().generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=expires_in or self.url_expiry,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Signing URL for {key} failed: {e}")
            raise StorageError("Failed to generate download URL")
        return url

    def check_health(self) -> None:
        """Raise ``StorageError`` unless the bucket answers a HEAD request."""
        try:
            self._get_client().head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Bucket check failed: {e}")
