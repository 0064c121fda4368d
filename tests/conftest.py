import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["EVENT_BUS_PROVIDER"] = "noop"

import uuid

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from clinicrm.main import app
from clinicrm.core.base import Base
from clinicrm.core.config import settings
from clinicrm.core.db import get_session
from clinicrm.core.security import create_access_token

ORG_ID = uuid.UUID(settings.DEFAULT_ORG_ID)
API = settings.API_PREFIX


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(roles: list[str] | None = None, scopes: list[str] | None = None, org_id: uuid.UUID = ORG_ID,
                 user_id: uuid.UUID | None = None) -> dict[str, str]:
    token = create_access_token(user_id or uuid.uuid4(), org_id, roles or [], ["*"] if scopes is None else scopes)
    return {"Authorization": f"Bearer {token}"}


async def create_patient(client: AsyncClient, **overrides) -> dict:
    body = {"first_name": "Anna", "last_name": "Nowak", "email": "anna@example.com"}
    body.update(overrides)
    r = await client.post(f"{API}/gabinet/patients", json=body)
    assert r.status_code == 201, r.text
    return r.json()
