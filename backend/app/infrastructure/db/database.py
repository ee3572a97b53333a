"""
Database Configuration for the AI Business Assistant

Async SQLAlchemy engine and session management. The connection URL is
either DATABASE_URL or derived from the Supabase project URL and the
database password.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from urllib.parse import quote_plus

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)

from app.config.settings import Settings, get_settings
from app.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def resolve_database_url(settings: Settings) -> str:
    """
    Build the asyncpg connection URL.

    DATABASE_URL wins; otherwise SUPABASE_URL + SUPABASE_PASSWORD are
    turned into the project's direct connection string.
    """
    if settings.database_url:
        database_url = settings.database_url
        for prefix in ("postgresql://", "postgres://"):
            if database_url.startswith(prefix):
                return database_url.replace(prefix, "postgresql+asyncpg://", 1)
        return database_url

    if not settings.supabase_password:
        raise ConfigurationError(
            "Either DATABASE_URL or (SUPABASE_URL + SUPABASE_PASSWORD) is required",
            missing_keys=["DATABASE_URL", "SUPABASE_PASSWORD"],
        )

    match = re.match(r"https?://([^.]+)\.supabase\.co", settings.supabase_url)
    if not match:
        raise ConfigurationError(f"Invalid SUPABASE_URL format: {settings.supabase_url}")

    project_ref = match.group(1)
    password = quote_plus(settings.supabase_password)
    return (
        f"postgresql+asyncpg://postgres:{password}"
        f"@db.{project_ref}.supabase.co:5432/postgres"
    )


class DatabaseManager:
    """
    Manages async database connections and sessions.

    Singleton so the whole process shares one connection pool.
    """

    _instance: Optional["DatabaseManager"] = None
    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async engine with connection pooling."""
        if self._engine is None:
            self._initialize_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._initialize_engine()
        return self._session_factory

    def _initialize_engine(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()

        self._engine = create_async_engine(
            resolve_database_url(settings),
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_pre_ping=True,
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def close(self) -> None:
        """Close engine and dispose of connection pool."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create the database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for async database sessions.

    Commits when the request handler returns, rolls back if it raises.

    Usage in FastAPI:
        @router.post("/create-expense")
        async def create(session: AsyncSession = Depends(get_session)):
            ...
    """
    db = get_db_manager()
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside FastAPI requests.

    Usage:
        async with get_session_context() as session:
            result = await session.execute(query)
    """
    db = get_db_manager()
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verify the database is reachable (called on app startup)."""
    db = get_db_manager()
    async with db.session_factory() as session:
        await session.execute(text("SELECT 1"))
    logger.info("Database connection verified")


async def close_db() -> None:
    """Close database connection pool (called on app shutdown)."""
    await get_db_manager().close()
