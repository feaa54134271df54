"""Async database engine and session management.

One engine per process. Request handlers get a session through get_db();
services commit their own unit of work, so the dependency only rolls back
whatever a failed request left pending.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from account_service.core.config import Settings, settings


def create_engine_from_settings(app_settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database.

    Security: bound parameters include password hashes and token digests,
    so they are left out of SQL logging and error messages.
    """
    return create_async_engine(
        app_settings.database_url,
        pool_pre_ping=True,
        hide_parameters=True,
    )


engine = create_engine_from_settings(settings)

# expire_on_commit=False: services read attributes after committing
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    await engine.dispose()
