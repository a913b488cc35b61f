"""Async SQLAlchemy engine, session factory, and the per-call deadline.

Each request gets its own AsyncSession via get_db. Every store call is
wrapped in store_deadline() so a slow or unreachable database surfaces
as StoreTimeout instead of hanging the request.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from myreference.config import settings
from myreference.errors import AppError, StoreError, StoreTimeout


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    url = url or settings.database_url
    kwargs = {"echo": settings.debug, "pool_pre_ping": True}
    # SQLite (tests, local dev) doesn't take pool sizing arguments.
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    return create_async_engine(url, **kwargs)


engine = build_engine()

# Session factory: each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def store_deadline(
    operation: str, timeout: Optional[float] = None
) -> AsyncIterator[None]:
    """Bound a store call and classify what escapes it.

    AppErrors raised inside pass through untouched; a timeout becomes
    StoreTimeout; any other SQLAlchemy error becomes StoreError.
    """
    try:
        async with asyncio.timeout(timeout or settings.db_timeout_seconds):
            yield
    except AppError:
        raise
    except TimeoutError as exc:
        raise StoreTimeout(f"{operation} exceeded its deadline") from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{operation} failed: {exc}") from exc
