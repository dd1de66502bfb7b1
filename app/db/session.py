# app/db/session.py
import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.config import get_settings
from app.db.base import Base

settings = get_settings()

# Detect if we're running under pytest
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ


def build_engine(db_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite files and test runs use NullPool so connections are never reused
    across event loops (TestClient runs its own loop in a worker thread).
    """
    use_null_pool = IS_TEST or db_url.startswith("sqlite")
    kwargs = {"poolclass": NullPool} if use_null_pool else {"pool_pre_ping": True}
    return create_async_engine(db_url, echo=False, future=True, **kwargs)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


# ---------------------------------------------------------------------------
# Main application engine + session
# ---------------------------------------------------------------------------
engine = build_engine(settings.DB_URL)

AsyncSessionLocal = build_sessionmaker(engine)


# ---------------------------------------------------------------------------
# PRODUCTION / DEV: DB init for app startup
# ---------------------------------------------------------------------------
async def init_db_for_startup(bind: AsyncEngine | None = None) -> None:
    """
    Create the schema if it does not exist yet.

    Safe to call from FastAPI startup in every environment.
    Typically you'd eventually replace this with Alembic migrations.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db(bind: AsyncEngine | None = None) -> None:
    """
    TEST-ONLY: reset the database schema.

    Drops all tables and recreates them using the current models.
    Do NOT call this from production code. Only from tests/fixtures.
    """
    async with (bind or engine).begin() as conn:
        # Drop everything to guarantee a clean slate per test
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
