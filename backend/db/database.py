from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


def get_session_maker() -> async_sessionmaker:
    """Dependency for code that must open its own sessions (e.g. the cook executor)."""
    return async_session_maker


# Model registry (import after Base to avoid cycles)
from .ingredient import Ingredient  # noqa: E402
from .recipe import Recipe  # noqa: E402
from .recipe_ingredient import RecipeIngredient  # noqa: E402
from .inventory import InventoryTransaction, PendingCompensation  # noqa: E402
