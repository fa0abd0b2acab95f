"""
Tests for the exception classes and the JSON error envelope
"""

import logging

import pytest
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from docarchive.exception_handlers import register_exception_handlers
from docarchive.exceptions import (
    AccountLockedError,
    DocArchiveError,
    DocumentNotFoundError,
    DuplicateResourceError,
    FileTooLargeError,
    InvalidCredentialsError,
    InvalidFileTypeError,
    StorageQuotaExceededError,
    TokenExpiredError,
    ValidationError,
    VersionNotFoundError,
)


class TestExceptionClasses:
    def test_base_defaults(self):
        exc = DocArchiveError("Broken")

        assert str(exc) == "Broken"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.errors == []

    @pytest.mark.parametrize(
        "exc,code,message",
        [
            (InvalidCredentialsError(), 401, "Incorrect email or password"),
            (TokenExpiredError(), 401, "Your token has expired. Please log in again."),
            (AccountLockedError(), 423, "Account is temporarily locked due to too many failed login attempts"),
            (DocumentNotFoundError(3), 404, "Document not found"),
            (VersionNotFoundError(2), 404, "Version not found"),
            (FileTooLargeError(10), 400, "File size is too large. Maximum size is 10MB."),
            (InvalidFileTypeError("text/x-sh"), 400, "File type 'text/x-sh' is not allowed"),
            (StorageQuotaExceededError(), 400, "Storage limit exceeded"),
        ],
    )
    def test_status_and_message(self, exc, code, message):
        assert exc.status_code == code
        assert exc.message == message

    def test_duplicate_resource_reports_field(self):
        exc = DuplicateResourceError("User", "email", "a@b.c")

        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.errors == [{"field": "email", "message": "'a@b.c' is already in use"}]


class Payload(BaseModel):
    title: str
    size: int


@pytest.fixture
async def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise DocumentNotFoundError(1)

    @app.get("/invalid")
    async def invalid():
        raise ValidationError("Title is required", field="title")

    @app.post("/payload")
    async def payload(body: Payload):
        return body

    @app.get("/crash")
    async def crash():
        raise RuntimeError("connection string with password")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestErrorEnvelope:
    async def test_operational_error(self, error_client):
        response = await error_client.get("/missing")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Document not found"}

    async def test_field_error_list(self, error_client):
        response = await error_client.get("/invalid")

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "title", "message": "Title is required"}]

    async def test_request_validation_is_400(self, error_client):
        response = await error_client.post("/payload", json={"size": "big"})

        body = response.json()
        assert response.status_code == 400
        assert body["message"] == "Validation failed"
        assert {error["field"] for error in body["errors"]} == {"title", "size"}

    async def test_unknown_route(self, error_client):
        response = await error_client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["message"] == "Can't find /nowhere on this server!"

    async def test_unhandled_error_hides_details(self, error_client):
        response = await error_client.get("/crash")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Something went wrong!"}


class TestAuthenticatedErrors:
    """Errors raised after authentication still reach the envelope and the access log"""

    async def test_missing_document(self, client, auth_headers, test_user, caplog):
        with caplog.at_level(logging.INFO, logger="docarchive.access"):
            response = await client.get("/api/v1/documents/9999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Document not found"}
        (record,) = [r for r in caplog.records if r.name == "docarchive.access"]
        assert record.status_code == 404
        assert record.user_id == test_user.id
        assert record.tenant_id == test_user.tenant_id

    async def test_admin_route_as_regular_user(self, client, auth_headers):
        response = await client.get("/api/v1/admin/dashboard/stats", headers=auth_headers)

        assert response.status_code == 403
        assert response.json() == {
            "status": "error",
            "message": "You do not have permission to perform this action",
        }

    async def test_validation_error_after_login(self, client, auth_headers):
        response = await client.patch("/api/v1/users/profile", headers=auth_headers, json={"lastName": None})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"
