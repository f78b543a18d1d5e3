"""Repository for fuel record operations."""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetlog.db.models import FuelRecord, PaymentStatus
from fleetlog.db.repositories.base import BaseRepository


class FuelRepository(BaseRepository[FuelRecord]):
    """Repository for fuel record operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, FuelRecord)

    async def latest_with_kilometers(self, tenant_id: str, unit_id: int) -> FuelRecord | None:
        """Get the most recent active fuel record of a unit that carries a reading."""
        stmt = (
            select(FuelRecord)
            .where(
                FuelRecord.tenant_id == tenant_id,
                FuelRecord.unit_id == unit_id,
                FuelRecord.is_active.is_(True),
                FuelRecord.kilometers.is_not(None),
            )
            .order_by(FuelRecord.record_date.desc(), FuelRecord.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_active_by_sale_number(self, tenant_id: str, sale_number: str) -> FuelRecord | None:
        """Find an active fuel record of the tenant with this sale number, unit loaded."""
        stmt = (
            select(FuelRecord)
            .options(selectinload(FuelRecord.unit))
            .where(
                FuelRecord.tenant_id == tenant_id,
                FuelRecord.sale_number == sale_number,
                FuelRecord.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_active_with_unit(self, tenant_id: str, record_id: int) -> FuelRecord | None:
        """Get an active fuel record of the tenant by id, unit loaded."""
        stmt = (
            select(FuelRecord)
            .options(selectinload(FuelRecord.unit))
            .where(
                FuelRecord.id == record_id,
                FuelRecord.tenant_id == tenant_id,
                FuelRecord.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def unpaid_totals(self, tenant_id: str) -> tuple[Decimal, int]:
        """Sum and count of the tenant's active unpaid fuel records."""
        stmt = select(
            func.coalesce(func.sum(FuelRecord.amount), 0),
            func.count(FuelRecord.id),
        ).where(
            FuelRecord.tenant_id == tenant_id,
            FuelRecord.is_active.is_(True),
            FuelRecord.payment_status == PaymentStatus.UNPAID,
        )
        total, count = (await self.session.execute(stmt)).one()
        return Decimal(str(total)), count

    async def list_unpaid(self, tenant_id: str, limit: int = 20) -> list[FuelRecord]:
        """Oldest active unpaid fuel records of the tenant, unit loaded."""
        stmt = (
            select(FuelRecord)
            .options(selectinload(FuelRecord.unit))
            .where(
                FuelRecord.tenant_id == tenant_id,
                FuelRecord.is_active.is_(True),
                FuelRecord.payment_status == PaymentStatus.UNPAID,
            )
            .order_by(FuelRecord.record_date, FuelRecord.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
