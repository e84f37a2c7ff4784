"""
Database session management with connection pooling and health checks
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Dict, Any
from urllib.parse import urlparse

from sqlmodel import SQLModel, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError, DisconnectionError
from sqlalchemy import event

from yatra.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def to_async_url(database_url: str) -> str:
    """Map a plain database URL onto its async driver"""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class DatabaseManager:
    """Database manager with connection pooling and health monitoring"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None
        self._connection_stats = {
            "total_connections": 0,
            "active_connections": 0,
            "failed_connections": 0,
            "last_health_check": None,
            "health_status": "unknown"
        }

    def _prepare_database_url(self) -> str:
        """Prepare and validate database URL"""
        database_url = self.settings.DB_URL

        if not database_url:
            raise ValueError("DB_URL environment variable is required")

        parsed = urlparse(database_url)
        if not parsed.scheme:
            raise ValueError("Invalid database URL format")

        logger.info(f"Database URL prepared: {parsed.scheme}://{parsed.hostname}:{parsed.port}/{parsed.path.lstrip('/')}")
        return to_async_url(database_url)

    def _create_engine(self) -> AsyncEngine:
        """Create SQLAlchemy async engine"""
        database_url = self._prepare_database_url()

        engine_config = {
            "url": database_url,
            "echo": self.settings.DB_ECHO,
            "future": True,
            "pool_pre_ping": True,
        }

        # Connection pooling only makes sense for PostgreSQL
        if "postgresql" in database_url:
            engine_config.update({
                "pool_size": self.settings.DB_POOL_SIZE,
                "max_overflow": self.settings.DB_MAX_OVERFLOW,
                "pool_timeout": self.settings.DB_POOL_TIMEOUT,
                "pool_recycle": self.settings.DB_POOL_RECYCLE,
            })

        engine = create_async_engine(**engine_config)
        self._setup_event_listeners(engine)

        logger.info(f"Database engine created with pool_size={self.settings.DB_POOL_SIZE}")
        return engine

    def _setup_event_listeners(self, engine: AsyncEngine) -> None:
        """Setup SQLAlchemy event listeners for monitoring"""

        @event.listens_for(engine.sync_engine, "connect")
        def on_connect(dbapi_connection, connection_record):
            self._connection_stats["total_connections"] += 1
            self._connection_stats["active_connections"] += 1

        @event.listens_for(engine.sync_engine, "close")
        def on_close(dbapi_connection, connection_record):
            self._connection_stats["active_connections"] = max(0, self._connection_stats["active_connections"] - 1)

        @event.listens_for(engine.sync_engine, "handle_error")
        def on_error(exception_context):
            self._connection_stats["failed_connections"] += 1
            logger.error(f"Database connection error: {exception_context.original_exception}")

    async def initialize(self) -> None:
        """Initialize database engine and session factory"""
        try:
            self.engine = self._create_engine()
            self.async_session = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=True,
            )
            await self.health_check()
            logger.info("Database manager initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session, rolling back on error"""
        if not self.async_session:
            raise RuntimeError("Database manager not initialized")

        session = self.async_session()
        try:
            yield session
        except DisconnectionError:
            logger.error("Database disconnection detected")
            self._connection_stats["failed_connections"] += 1
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e}")
            self._connection_stats["failed_connections"] += 1
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> Dict[str, Any]:
        """Database health check"""
        health_info = {
            "status": "healthy",
            "timestamp": time.time(),
            "connection_stats": self._connection_stats.copy(),
            "checks": {}
        }

        try:
            start_time = time.time()
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            connection_time = time.time() - start_time
            health_info["checks"]["connectivity"] = {
                "status": "pass",
                "response_time": f"{connection_time:.3f}s"
            }
            self._connection_stats["last_health_check"] = time.time()
            self._connection_stats["health_status"] = "healthy"

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health_info["status"] = "unhealthy"
            health_info["error"] = str(e)
            health_info["checks"]["connectivity"] = {
                "status": "fail",
                "error": str(e)
            }
            self._connection_stats["health_status"] = "unhealthy"

        return health_info

    async def init_db(self) -> None:
        """Create database tables"""
        if not self.engine:
            raise RuntimeError("Database engine not initialized")

        # registers every table on SQLModel.metadata
        import yatra.db.models  # noqa: F401

        logger.info("Creating database tables...")
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables created successfully")

    async def close(self) -> None:
        """Cleanup database connections"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the global manager"""
    async with db_manager.get_session() as session:
        yield session
