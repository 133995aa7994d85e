"""
Async engine, session factory and the unit-of-work boundary.

Every core operation receives an explicit AsyncSession and wraps its writes in
`unit_of_work`, which commits on success and rolls back on any exception, so a
failed multi-step mutation never leaves partial rows behind.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings

settings = get_settings()

engine_options = {"echo": False, "pool_pre_ping": True}
if settings.DATABASE_URL.startswith("postgresql"):
    engine_options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )

engine = create_async_engine(settings.DATABASE_URL, **engine_options)

SessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
