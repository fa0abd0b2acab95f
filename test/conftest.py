"""
Pytest configuration and fixtures for DocArchive tests
"""

import os

# Settings are read at import time; configure them before importing docarchive
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import docarchive.models  # noqa: E402, F401
from docarchive import database  # noqa: E402
from docarchive.constants.roles import RoleName  # noqa: E402
from docarchive.database import Base  # noqa: E402
from docarchive.main import create_app  # noqa: E402
from docarchive.models.tenant import Tenant  # noqa: E402
from docarchive.models.user import User  # noqa: E402
from utils.mock_utils import auth_header, make_tenant, make_user  # noqa: E402
from utils.mocks import FakeMailer, FakeStorage  # noqa: E402


@pytest.fixture
async def test_engine(tmp_path, monkeypatch):
    """
    A fresh SQLite database per test.

    The application's engine and session factory are swapped for ones bound
    to this database, so request handlers, background activity logging and
    notification fan-out all share it.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and asserting database state directly."""
    async with database.AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
async def client(test_engine, storage, mailer) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(storage=storage, mailer=mailer)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============== Tenants and users ==============


@pytest.fixture
async def tenant(test_db: AsyncSession) -> Tenant:
    return await make_tenant(test_db, "acme")


@pytest.fixture
async def other_tenant(test_db: AsyncSession) -> Tenant:
    return await make_tenant(test_db, "globex")


@pytest.fixture
async def test_user(test_db: AsyncSession, tenant: Tenant) -> User:
    return await make_user(test_db, tenant, "owner@acme.com", first_name="Olivia", last_name="Owner")


@pytest.fixture
async def second_user(test_db: AsyncSession, tenant: Tenant) -> User:
    return await make_user(test_db, tenant, "colleague@acme.com", first_name="Colin", last_name="Colleague")


@pytest.fixture
async def test_admin(test_db: AsyncSession, tenant: Tenant) -> User:
    return await make_user(test_db, tenant, "admin@acme.com", role=RoleName.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
async def outsider(test_db: AsyncSession, other_tenant: Tenant) -> User:
    return await make_user(test_db, other_tenant, "someone@globex.com", first_name="Oscar", last_name="Outsider")


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return auth_header(test_user)


@pytest.fixture
def second_headers(second_user: User) -> dict:
    return auth_header(second_user)


@pytest.fixture
def admin_headers(test_admin: User) -> dict:
    return auth_header(test_admin)


@pytest.fixture
def outsider_headers(outsider: User) -> dict:
    return auth_header(outsider)
