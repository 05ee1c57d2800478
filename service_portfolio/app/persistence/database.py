"""
Async SQLAlchemy engine lifecycle for the portfolio service.
"""

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shared.errors import ServiceError
from shared.logging import get_logger

from .tables import metadata


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine; tables are created on start."""

    def __init__(self, url: str):
        self.url = url
        self.logger = get_logger("portfolio.persistence.database")
        self.engine: Optional[AsyncEngine] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def start(self):
        """Create the engine and any missing tables."""
        try:
            self.engine = create_async_engine(self.url, pool_pre_ping=True)
            if self.is_sqlite:
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            await self.create_tables()

            self.logger.info("Database started", dialect=self.engine.dialect.name)

        except Exception as e:
            self.logger.error("Failed to start database", error=str(e))
            raise ServiceError(f"Failed to start database: {e}") from e

    async def stop(self):
        """Dispose of pooled connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.logger.info("Database stopped")

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def ping(self) -> bool:
        """Run ``SELECT 1``; False when the database cannot answer."""
        if not self.engine:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            self.logger.error("Database health check failed", error=str(e))
            return False

    def begin(self):
        """Connection with a transaction committed on exit."""
        if not self.engine:
            raise ServiceError("Database has not been started")
        return self.engine.begin()
