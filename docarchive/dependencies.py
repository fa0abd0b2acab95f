"""Request-scoped accessors for the collaborators built in ``create_app``."""

from fastapi import Request

from docarchive.services.email_service import EmailService
from docarchive.services.storage_service import StorageService


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


def get_mailer(request: Request) -> EmailService:
    return request.app.state.mailer
