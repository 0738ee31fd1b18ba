"""Pytest configuration and fixtures for API and service tests."""

import os
import tempfile

# The engine in db.database is built at import time; point it at SQLite first
os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'inventorybrew-import.db')}"
)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from db.database import Base, get_async_session, get_session_maker
from main import app


@pytest.fixture
async def session_maker(tmp_path):
    """Provide a clean file-backed SQLite database for each test function.

    A file (not :memory:) so every session opened by the cook executor sees
    the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def create_ingredient(client):
    async def _create(**overrides):
        payload = {
            "name": "Flour",
            "unit": "g",
            "stockQuantity": 0,
            "costPerUnit": 0,
            "reorderLevel": 0,
        }
        payload.update(overrides)
        res = await client.post("/api/ingredients/", json=payload)
        assert res.status_code == 201, res.text
        return res.json()

    return _create


@pytest.fixture
def create_recipe(client):
    async def _create(lines, name="Test recipe", selling_price=0, **extra):
        payload = {
            "name": name,
            "sellingPrice": selling_price,
            "ingredients": [
                {"ingredientId": ing["id"], "quantity": qty, "unit": ing["unit"]} for ing, qty in lines
            ],
        }
        payload.update(extra)
        res = await client.post("/api/recipes/", json=payload)
        assert res.status_code == 201, res.text
        return res.json()

    return _create
