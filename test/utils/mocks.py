"""
In-memory stand-ins for the object store and the mailer

Both subclass the real services so routes see the same interface; only the
network-facing methods are replaced.
"""

from docarchive.exceptions import StorageError
from docarchive.services.email_service import EmailService
from docarchive.services.storage_service import StorageService


class FakeStorage(StorageService):
    """Object store that keeps uploaded bodies in a dict"""

    def __init__(self):
        super().__init__(bucket="test-bucket", access_key="test", secret_key="test")
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.deleted: list[str] = []
        self.fail_deletes = False
        self.healthy = True

    def upload_file(self, key: str, body: bytes, content_type: str, metadata: dict[str, str] | None = None) -> str:
        self.objects[key] = body
        self.content_types[key] = content_type
        return key

    def download_file(self, key: str) -> bytes:
        if key not in self.objects:
            raise StorageError("Failed to download file")
        return self.objects[key]

    def delete_file(self, key: str) -> None:
        if self.fail_deletes:
            raise StorageError("Failed to delete file")
        self.objects.pop(key, None)
        self.deleted.append(key)

    def generate_download_url(self, key: str, file_name: str | None = None, expires_in: int | None = None) -> str:
        return f"https://storage.test/{self.bucket}/{key}?expires={expires_in or self.url_expiry}"

    def check_health(self) -> None:
        if not self.healthy:
            raise StorageError("Bucket check failed: unreachable")


class FakeMailer(EmailService):
    """Mailer that renders templates but records messages instead of sending them"""

    def __init__(self):
        super().__init__(smtp_host="smtp.test", smtp_from="noreply@docarchive.test", frontend_url="http://app.test")
        self.sent: list[dict] = []

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> bool:
        self.sent.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})
        return True

    def sent_to(self, email: str) -> list[dict]:
        return [message for message in self.sent if message["to"] == email]
