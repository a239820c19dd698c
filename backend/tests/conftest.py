import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stockroom import models  # noqa: F401
from stockroom.db import Base, get_session
from stockroom.main import app
from stockroom.models import (
    Equipment,
    EquipmentCategory,
    EquipmentCondition,
    EquipmentUnit,
    User,
    UserRole,
)
from stockroom.rate_limit import limiter
from stockroom.schemas import EquipmentCreate
from stockroom.security import SessionData, create_session, hash_password
from stockroom.services import inventory
from stockroom.sites import Site, resolve_site, warehouse


limiter.enabled = False


@pytest.fixture
async def engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single sqlite connection alive so every session
    sees the same schema and rows.
    """
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def enam() -> Site:
    return resolve_site("ENAM")


@pytest.fixture
def ismp() -> Site:
    return resolve_site("ISMP")


def auth_headers(role: UserRole, username: str, site: str, name: str | None = None) -> dict:
    token = create_session(role, name or username.title(), username, site)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engineer_headers() -> dict:
    return auth_headers(UserRole.engineer, "alice", "ENAM", "Alice")


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(UserRole.admin, "admin", warehouse().key, "Administrator")


@pytest.fixture
def engineer_session() -> SessionData:
    return SessionData(role=UserRole.engineer, name="Alice", username="alice", site="ENAM")


def equipment_payload(name: str, quantity: int, unit: EquipmentUnit = EquipmentUnit.pieces, **extra) -> EquipmentCreate:
    data = {
        "name": name,
        "category": EquipmentCategory.power_tools,
        "quantity": quantity,
        "unit": unit,
        "location": "Shelf A1",
        "condition": EquipmentCondition.good,
    }
    data.update(extra)
    return EquipmentCreate(**data)


async def add_equipment(db, site: Site, name: str, quantity: int, unit: EquipmentUnit = EquipmentUnit.pieces) -> Equipment:
    equipment, _ = await inventory.upsert_equipment(db, site, equipment_payload(name, quantity, unit))
    return equipment


async def add_user(db, site: Site, username: str, password: str, role: UserRole = UserRole.engineer) -> User:
    user = User(
        partition=site.partition,
        username=username,
        name=username.title(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user
