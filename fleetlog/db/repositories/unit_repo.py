"""Repository for unit (vehicle) operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetlog.db.models import Unit
from fleetlog.db.repositories.base import BaseRepository


class UnitRepository(BaseRepository[Unit]):
    """Repository for unit operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Unit)

    async def list_active(self, tenant_id: str) -> list[Unit]:
        """List active units of a tenant, ordered by operator name.

        Args:
            tenant_id: Tenant identifier

        Returns:
            Active units, in the order a batch run walks them
        """
        stmt = (
            select(Unit)
            .where(Unit.tenant_id == tenant_id, Unit.is_active.is_(True))
            .order_by(Unit.operator_name, Unit.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_number(self, tenant_id: str, unit_number: str) -> Unit | None:
        """Get a unit by its tenant-scoped number."""
        stmt = select(Unit).where(Unit.tenant_id == tenant_id, Unit.unit_number == unit_number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
