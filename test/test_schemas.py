"""
Tests for request/response schemas and the route -> schema table
"""

import inspect

import pytest
from fastapi.routing import APIRoute
from pydantic import ValidationError

from docarchive.main import create_app
from docarchive.schemas import REQUEST_SCHEMAS
from docarchive.schemas.document import DocumentUploadForm, ShareRequest
from docarchive.schemas.user import RegisterRequest, UserOut
from utils.mocks import FakeMailer, FakeStorage


def route_key(route: APIRoute) -> str:
    return f"{route.endpoint.__module__.rsplit('.', 1)[-1]}.{route.name}"


@pytest.fixture(scope="module")
def routes() -> dict[str, APIRoute]:
    app = create_app(storage=FakeStorage(), mailer=FakeMailer())
    return {route_key(route): route for route in app.routes if isinstance(route, APIRoute)}


class TestRequestSchemaTable:
    def test_every_entry_names_a_route(self, routes):
        assert set(REQUEST_SCHEMAS) <= set(routes)

    def test_json_routes_bind_their_schema(self, routes):
        for key, schema in REQUEST_SCHEMAS.items():
            if key in ("documents.upload_document", "documents.upload_version"):
                continue
            annotations = [p.annotation for p in inspect.signature(routes[key].endpoint).parameters.values()]
            assert schema in annotations, key


class TestUserSchemas:
    def test_register_accepts_camel_case(self):
        data = RegisterRequest.model_validate(
            {"firstName": "Ada", "lastName": "Admin", "email": "Ada@Example.com", "password": "Password123"}
        )

        assert data.first_name == "Ada"
        assert data.email == "ada@example.com"

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "NoDigitsHere"])
    def test_register_rejects_weak_password(self, password):
        with pytest.raises(ValidationError):
            RegisterRequest(first_name="Ada", last_name="Admin", email="a@b.co", password=password)

    async def test_user_out_derives_fields(self, test_user):
        payload = UserOut.model_validate(test_user).model_dump(by_alias=True)

        assert payload["fullName"] == "Olivia Owner"
        assert payload["isLocked"] is False
        assert "hashedPassword" not in payload
        assert "lockUntil" not in payload


class TestDocumentSchemas:
    def test_tags_split_and_deduplicated(self):
        form = DocumentUploadForm(title="Report", tags="Tax, 2024 ,tax,")

        assert form.tags == ["tax", "2024"]

    def test_share_requires_recipient(self):
        with pytest.raises(ValidationError):
            ShareRequest(permission="edit")

    def test_share_rejects_unknown_permission(self):
        with pytest.raises(ValidationError):
            ShareRequest(user_id=1, permission="owner")
