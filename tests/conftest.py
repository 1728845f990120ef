from contextlib import contextmanager
from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.base import Base
from libs.db.session import get_async_db
from services.laundry_service import models as _laundry_models  # noqa: F401
from services.laundry_service.app.main import app
from services.laundry_service.dependencies import get_push
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tests.factories import StaffFactory


class FakePushClient:
    """Stands in for the push gateway and records what would have been sent."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        *,
        token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return self.ok


def make_auth_user(user_id: str, email: Optional[str] = None) -> AuthUser:
    return AuthUser(user_id=user_id, email=email, role="authenticated")


@contextmanager
def override_auth(target_app: FastAPI, user: AuthUser):
    """Authenticate every request made inside the block as ``user``."""
    previous = target_app.dependency_overrides.get(get_current_user)
    target_app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            target_app.dependency_overrides.pop(get_current_user, None)
        else:
            target_app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's implicit transaction handling breaks SAVEPOINT; take it over
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def push_client() -> FakePushClient:
    return FakePushClient()


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


async def _insert_staff(db: AsyncSession, *roles: str):
    staff = StaffFactory.create(roles=roles)
    db.add(staff)
    await db.commit()
    await db.refresh(staff)
    return staff


@pytest_asyncio.fixture
async def cashier(db_session):
    return await _insert_staff(db_session, "cashier")


@pytest_asyncio.fixture
async def admin(db_session):
    return await _insert_staff(db_session, "admin")


@pytest_asyncio.fixture
async def attendant(db_session):
    return await _insert_staff(db_session, "attendant")


@pytest_asyncio.fixture
async def rider(db_session):
    return await _insert_staff(db_session, "rider")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(db_session, push_client) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the laundry app, sharing the test session."""

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _get_db
    app.dependency_overrides[get_push] = lambda: push_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def as_user():
    """Return a context manager that authenticates requests as a staff or customer row."""

    def _as(principal) -> Any:
        return override_auth(app, make_auth_user(principal.auth_id))

    return _as
