"""
Database connection management for Tastebase

Owns the asynchronous SQLAlchemy 2.0 engine used by the persistence gateway.
PostgreSQL is used in deployed environments; development and tests fall back
to a SQLite file through aiosqlite.
"""

import os
import logging
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DEV_URL = "sqlite+aiosqlite:///./tastebase.db"


def to_async_url(database_url: str) -> str:
    """Rewrite a plain database URL to use an async driver."""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


class DatabaseManager:
    """Manages database connections and sessions"""

    def __init__(self, database_url: Optional[str] = None):
        self._explicit_url = database_url
        self.async_engine: Optional[AsyncEngine] = None
        self.async_session_factory: Optional[async_sessionmaker] = None
        self._initialized = False

    def _get_database_url(self) -> Optional[str]:
        """Get database URL from environment or Docker secrets file"""
        if self._explicit_url:
            return self._explicit_url

        url = os.getenv("DATABASE_URL", "")
        if url:
            return url

        url_file = os.getenv("DATABASE_URL_FILE")
        if url_file and os.path.exists(url_file):
            try:
                with open(url_file, "r") as f:
                    return f.read().strip()
            except OSError as e:
                logger.warning("Could not read DATABASE_URL from file %s: %s", url_file, e)

        return None

    def initialize(self):
        """Initialize database connections"""
        if self._initialized:
            return

        database_url = self._get_database_url()
        if not database_url:
            if os.getenv("ENVIRONMENT", "development") == "production":
                raise ValueError("DATABASE_URL environment variable or file is required")
            logger.warning("No DATABASE_URL found, using development default %s", DEFAULT_DEV_URL)
            database_url = DEFAULT_DEV_URL

        async_database_url = to_async_url(database_url)
        engine_kwargs = {
            "echo": os.getenv("DATABASE_ECHO", "false").lower() == "true",
            "pool_pre_ping": True,
        }
        if async_database_url.startswith("postgresql+asyncpg"):
            engine_kwargs.update(
                pool_size=20,
                max_overflow=20,
                pool_recycle=3600,  # Recycle connections after 1 hour
                pool_timeout=30,
                connect_args={"command_timeout": 60},
            )

        self.async_engine = create_async_engine(async_database_url, **engine_kwargs)
        self.async_session_factory = async_sessionmaker(
            bind=self.async_engine,
            expire_on_commit=False,
        )

        self._initialized = True
        logger.info("Database manager initialized (driver=%s)", self.async_engine.url.drivername)

    async def test_connection(self) -> bool:
        """Test database connection"""
        try:
            async with self.get_async_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error("Database connection test failed: %s", e)
            return False

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session"""
        if not self._initialized:
            self.initialize()

        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self):
        """Create all tables (for development/testing)"""
        from .base import Base

        if not self._initialized:
            self.initialize()

        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def drop_tables(self):
        """Drop all tables (for development/testing)"""
        from .base import Base

        if not self._initialized:
            self.initialize()

        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            logger.info("Database tables dropped")

    async def dispose(self):
        if self.async_engine is not None:
            await self.async_engine.dispose()
        self.async_engine = None
        self.async_session_factory = None
        self._initialized = False


# Global database manager instance
db_manager = DatabaseManager()
