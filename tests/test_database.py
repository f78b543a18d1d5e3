"""Tests for DatabaseManager."""

import pytest
from sqlalchemy import func, select, text

from conftest import TENANT
from fleetlog.core.config import DatabaseConfig
from fleetlog.db.database import DatabaseManager
from fleetlog.db.models import Unit


class TestDatabaseManager:
    """Tests for connection setup and sessions."""

    async def test_init_creates_missing_directory(self, tmp_path):
        db = DatabaseManager(tmp_path / "data" / "fleet" / "fleetlog.db")
        try:
            await db.init_db()
        finally:
            await db.close()

        assert (tmp_path / "data" / "fleet" / "fleetlog.db").exists()

    async def test_connection_pragmas(self, tmp_path):
        db = DatabaseManager(tmp_path / "fleetlog.db", busy_timeout_ms=1234)
        try:
            await db.init_db()
            async with db.session() as session:
                foreign_keys = (await session.execute(text("PRAGMA foreign_keys"))).scalar_one()
                journal_mode = (await session.execute(text("PRAGMA journal_mode"))).scalar_one()
                busy_timeout = (await session.execute(text("PRAGMA busy_timeout"))).scalar_one()
        finally:
            await db.close()

        assert foreign_keys == 1
        assert journal_mode.lower() == "wal"
        assert busy_timeout == 1234

    def test_from_config(self, tmp_path):
        config = DatabaseConfig(path=tmp_path / "fleet.db", echo=True, busy_timeout_ms=250)

        db = DatabaseManager.from_config(config)

        assert db.db_path == tmp_path / "fleet.db"
        assert db.engine.echo is True
        assert db.busy_timeout_ms == 250

    async def test_session_rolls_back_on_error(self, db_manager):
        with pytest.raises(RuntimeError):
            async with db_manager.session() as session:
                session.add(Unit(tenant_id=TENANT, operator_name="Ana", unit_number="7"))
                await session.flush()
                raise RuntimeError("boom")

        async with db_manager.session() as session:
            count = (await session.execute(select(func.count()).select_from(Unit))).scalar_one()
        assert count == 0
