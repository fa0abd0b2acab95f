"""
Custom Exception Classes for DocArchive

Operational errors are raised where the problem is detected and turned into
the JSON error envelope by ``docarchive.exception_handlers``.
"""

from typing import Any

from fastapi import status


class DocArchiveError(Exception):
    """Base exception class for all operational errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(DocArchiveError):
    """Raised when authentication fails"""

    def __init__(self, message: str = "You are not logged in. Please log in to get access."):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid"""

    def __init__(self, message: str = "Incorrect email or password"):
        super().__init__(message=message)


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT has expired"""

    def __init__(self, message: str = "Your token has expired. Please log in again."):
        super().__init__(message=message)


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT is invalid"""

    def __init__(self, message: str = "Invalid token. Please log in again."):
        super().__init__(message=message)


class AccountLockedError(DocArchiveError):
    """Raised when too many failed logins locked the account"""

    def __init__(self, message: str = "Account is temporarily locked due to too many failed login attempts"):
        super().__init__(message=message, status_code=status.HTTP_423_LOCKED)


class AuthorizationError(DocArchiveError):
    """Raised when user lacks permission for an action"""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(DocArchiveError):
    """Base class for resource not found errors"""

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message=f"{resource_type} not found", status_code=status.HTTP_404_NOT_FOUND)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: Any | None = None):
        super().__init__(resource_type="User", resource_id=user_id)


class DocumentNotFoundError(ResourceNotFoundError):
    def __init__(self, document_id: Any | None = None):
        super().__init__(resource_type="Document", resource_id=document_id)


class CommentNotFoundError(ResourceNotFoundError):
    def __init__(self, comment_id: Any | None = None):
        super().__init__(resource_type="Comment", resource_id=comment_id)


class NotificationNotFoundError(ResourceNotFoundError):
    def __init__(self, notification_id: Any | None = None):
        super().__init__(resource_type="Notification", resource_id=notification_id)


class MessageNotFoundError(ResourceNotFoundError):
    def __init__(self, message_id: Any | None = None):
        super().__init__(resource_type="Message", resource_id=message_id)


class VersionNotFoundError(ResourceNotFoundError):
    def __init__(self, version: Any | None = None):
        super().__init__(resource_type="Version", resource_id=version)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(DocArchiveError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None):
        errors = [{"field": field, "message": message}] if field else None
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, errors=errors)


class DuplicateResourceError(DocArchiveError):
    """Raised when attempting to create a duplicate resource"""

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with this {field} already exists",
            status_code=status.HTTP_409_CONFLICT,
            errors=[{"field": field, "message": f"'{value}' is already in use"}],
        )


class InvalidOperationError(DocArchiveError):
    """Raised when an operation is invalid in the current context"""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


# ============================================================================
# File & Storage Exceptions
# ============================================================================


class FileUploadError(DocArchiveError):
    """Raised when file upload fails"""

    def __init__(self, message: str = "File upload failed"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


class FileTooLargeError(FileUploadError):
    """Raised when an upload exceeds the configured size cap"""

    def __init__(self, max_size_mb: int):
        super().__init__(message=f"File size is too large. Maximum size is {max_size_mb}MB.")


class InvalidFileTypeError(FileUploadError):
    """Raised when uploaded file type is not allowed"""

    def __init__(self, file_type: str | None):
        super().__init__(message=f"File type '{file_type}' is not allowed")


class StorageQuotaExceededError(FileUploadError):
    """Raised when an upload would exceed the user's storage quota"""

    def __init__(self, message: str = "Storage limit exceeded"):
        super().__init__(message=message)


class StorageError(DocArchiveError):
    """Raised when the object store rejects an operation"""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message=message, status_code=status.HTTP_502_BAD_GATEWAY)
