"""Fixtures for the marketplace integration suite.

Runs against a migrated PostgreSQL (``alembic upgrade head``) and is skipped
otherwise. Fixtures share one session-scoped event loop because the engine
pool in ``mp_common.database`` is bound to the loop it first ran on.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.main import app
from src.mp_common.database import async_session_factory, engine
from src.mp_common.enums import UserRole


@pytest_asyncio.fixture(loop_scope="session", scope="session", autouse=True)
async def _require_database() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM promotions LIMIT 1"))
    except (OSError, SQLAlchemyError) as e:
        pytest.skip(f"marketplace database not migrated or unreachable: {e}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _execute_sql(sql: str, **params: object) -> list:
    """Seed or inspect rows behind the API's back (listings, roles)."""
    async with async_session_factory() as session:
        result = await session.execute(text(sql), params)
        rows = result.fetchall() if result.returns_rows else []
        await session.commit()
        return rows


async def _open_account(
    client: AsyncClient, role: str = UserRole.USER.value, location: str | None = None
) -> dict[str, str]:
    """Register through the API; roles other than ``user`` are granted by billing/staff, so set in SQL."""
    tag = uuid.uuid4().hex[:8]
    body = {
        "username": f"it_{role}_{tag}",
        "email": f"{role}.{tag}@example.pl",
        "password": "Sprzedam1",
        "location": location,
    }
    reg = await client.post("/api/v1/auth/register", json=body)
    user_id = reg.json()["data"]["user_id"]
    if role != UserRole.USER.value:
        await _execute_sql(
            "UPDATE users SET role = :role WHERE id = CAST(:id AS UUID)", role=role, id=user_id
        )
    login = await client.post(
        "/api/v1/auth/login",
        json={"username": body["username"], "password": body["password"]},
    )
    token = login.json()["data"]["access_token"]
    return {"user_id": user_id, "Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    account = await _open_account(client, role=UserRole.ADMIN.value)
    return {"Authorization": account["Authorization"]}


@pytest.fixture
def sql():
    return _execute_sql


@pytest.fixture
def make_account(client: AsyncClient):
    """Factory: ``await make_account("dealer", location="Poznań")``."""

    async def _make(role: str = UserRole.USER.value, location: str | None = None) -> dict[str, str]:
        return await _open_account(client, role, location)

    return _make
