"""
config/database.py
Async SQLAlchemy engine, session factory, and base model.
Backs the `sql` storage substrate (SQLite via aiosqlite by default).
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


# ── Base Model ────────────────────────────────────────────────
class Base(DeclarativeBase):
    """All ORM models inherit from this."""
    pass


# ── Engine (initialized on startup) ──────────────────────────
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def build_session_factory(url: str) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an engine + session factory pair for the given database URL."""
    new_engine = create_async_engine(
        url,
        pool_pre_ping=True,          # Detect stale connections
        echo=settings.DEBUG,         # Log SQL in debug mode
    )
    factory = async_sessionmaker(
        bind=new_engine,
        class_=AsyncSession,
        expire_on_commit=False,      # Don't expire after commit (async-safe)
        autoflush=False,
    )
    return new_engine, factory


async def create_tables(target: AsyncEngine) -> None:
    """Create all tables on the given engine."""
    # Registers NamespaceSnapshot on Base.metadata
    import shared.store.backends  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Create engine and tables. Run during app startup."""
    global engine, AsyncSessionLocal
    engine, AsyncSessionLocal = build_session_factory(settings.DATABASE_URL)
    await create_tables(engine)


async def close_db() -> None:
    """Dispose engine. Run during app shutdown."""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None
