"""Repository for shift kilometer log operations."""

from datetime import date, datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetlog.db.models import KilometerLog, LogType
from fleetlog.db.repositories.base import BaseRepository


class KilometerLogRepository(BaseRepository[KilometerLog]):
    """Repository for kilometer log operations.

    Unless stated otherwise, queries only return non-omitted entries.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, KilometerLog)

    async def get_with_unit(self, tenant_id: str, entry_id: int) -> KilometerLog | None:
        """Get an entry of the tenant with its unit loaded (omitted entries included)."""
        stmt = (
            select(KilometerLog)
            .where(KilometerLog.id == entry_id, KilometerLog.tenant_id == tenant_id)
            .options(selectinload(KilometerLog.unit))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_key(
        self,
        tenant_id: str,
        unit_id: int,
        log_date: date,
        log_type: LogType,
    ) -> KilometerLog | None:
        """Get the entry for a uniqueness key, omitted or not."""
        stmt = select(KilometerLog).where(
            KilometerLog.tenant_id == tenant_id,
            KilometerLog.unit_id == unit_id,
            KilometerLog.log_date == log_date,
            KilometerLog.log_type == log_type,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def latest_for_unit(self, tenant_id: str, unit_id: int) -> KilometerLog | None:
        """Get the most recent entry of a unit by log date, then log time."""
        stmt = (
            select(KilometerLog)
            .where(
                KilometerLog.tenant_id == tenant_id,
                KilometerLog.unit_id == unit_id,
                KilometerLog.is_omitted.is_(False),
            )
            .order_by(KilometerLog.log_date.desc(), KilometerLog.log_time.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_date(
        self,
        tenant_id: str,
        log_date: date,
        log_type: LogType | None = None,
    ) -> list[KilometerLog]:
        """List entries logged for a calendar day, oldest first.

        Args:
            tenant_id: Tenant identifier
            log_date: Day the readings belong to
            log_type: Restrict to one log type

        Returns:
            Entries with their unit loaded
        """
        conditions = [
            KilometerLog.tenant_id == tenant_id,
            KilometerLog.log_date == log_date,
            KilometerLog.is_omitted.is_(False),
        ]
        if log_type is not None:
            conditions.append(KilometerLog.log_type == log_type)

        stmt = (
            select(KilometerLog)
            .where(*conditions)
            .options(selectinload(KilometerLog.unit))
            .order_by(KilometerLog.log_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def previous_entry(self, entry: KilometerLog) -> KilometerLog | None:
        """Nearest entry of the same unit strictly before ``entry`` on its timeline."""
        stmt = (
            select(KilometerLog)
            .where(
                *self._same_unit(entry),
                or_(
                    KilometerLog.log_date < entry.log_date,
                    and_(
                        KilometerLog.log_date == entry.log_date,
                        KilometerLog.log_time < entry.log_time,
                    ),
                ),
            )
            .order_by(KilometerLog.log_date.desc(), KilometerLog.log_time.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def next_entry(self, entry: KilometerLog) -> KilometerLog | None:
        """Nearest entry of the same unit strictly after ``entry`` on its timeline."""
        stmt = (
            select(KilometerLog)
            .where(
                *self._same_unit(entry),
                or_(
                    KilometerLog.log_date > entry.log_date,
                    and_(
                        KilometerLog.log_date == entry.log_date,
                        KilometerLog.log_time > entry.log_time,
                    ),
                ),
            )
            .order_by(KilometerLog.log_date, KilometerLog.log_time)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(self, tenant_id: str, limit: int = 10) -> list[KilometerLog]:
        """List the most recently logged entries of a tenant, newest first."""
        stmt = (
            select(KilometerLog)
            .where(KilometerLog.tenant_id == tenant_id, KilometerLog.is_omitted.is_(False))
            .options(selectinload(KilometerLog.unit))
            .order_by(KilometerLog.log_time.desc(), KilometerLog.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_in_range(
        self,
        tenant_id: str,
        start: date,
        end: date,
        unit_id: int | None = None,
    ) -> list[KilometerLog]:
        """List entries with ``start <= log_date <= end``, grouped by unit."""
        conditions = [
            KilometerLog.tenant_id == tenant_id,
            KilometerLog.is_omitted.is_(False),
            KilometerLog.log_date >= start,
            KilometerLog.log_date <= end,
        ]
        if unit_id is not None:
            conditions.append(KilometerLog.unit_id == unit_id)

        stmt = (
            select(KilometerLog)
            .where(*conditions)
            .options(selectinload(KilometerLog.unit))
            .order_by(KilometerLog.unit_id, KilometerLog.log_date, KilometerLog.log_type)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _same_unit(entry: KilometerLog) -> list:
        return [
            KilometerLog.tenant_id == entry.tenant_id,
            KilometerLog.unit_id == entry.unit_id,
            KilometerLog.is_omitted.is_(False),
            KilometerLog.id != entry.id,
        ]
