"""Database connection manager for FleetLog.

Several chats can run shift batches and fuel forms at the same time, each
handler opening its own short session. SQLite connections are therefore set
up for concurrent use: WAL journaling so readers never block the writer,
and a busy timeout so a second writer waits instead of failing with
"database is locked".
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fleetlog.core.config.models import DatabaseConfig
from fleetlog.db.models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages async SQLite database connections."""

    def __init__(
        self,
        db_path: Path | str = "fleetlog.db",
        echo: bool = False,
        busy_timeout_ms: int = 5000,
    ):
        self.db_path = Path(db_path)
        self.db_url = f"sqlite+aiosqlite:///{self.db_path}"
        self.busy_timeout_ms = busy_timeout_ms

        self.engine = create_async_engine(self.db_url, echo=echo)
        event.listen(self.engine.sync_engine, "connect", self._configure_connection)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "DatabaseManager":
        return cls(config.path, echo=config.echo, busy_timeout_ms=config.busy_timeout_ms)

    def _configure_connection(self, dbapi_conn: Any, connection_record: Any) -> None:
        """Applied to every new SQLite connection."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        cursor.close()

    async def init_db(self) -> None:
        """Create the database directory and all tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database ready at {self.db_path}")

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional session: commit on success, roll back on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
