"""
Magic Movers Backend — Database Session Management
====================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Transaction Model:
    One request = one session = one transaction. Everything a service does
    for a request (compare-and-swap on the mover row, item attachment) is
    committed together or rolled back together.

Connection Pooling:
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600 on
    PostgreSQL. SQLite (tests, local development) keeps SQLAlchemy's
    default pool and accepts none of these options.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options() -> dict:
    options = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, outside
# the greenlet context that lazy loads would need
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (services run their queries)
        3. On success: commits the transaction
        4. On error: rolls back, so a failed load never leaves items
           half-attached
        5. Always: closes the session (returns connection to pool)

    Raises:
        Any exception is re-raised for the global error handlers.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all_tables() -> None:
    """
    What:  Creates every table registered on Base.metadata.
    When:  On startup when DB_CREATE_ALL is set; production uses Alembic.
    """
    # Model modules register their tables on import
    from app.models import item, mover  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
