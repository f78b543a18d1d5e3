"""Base repository with common CRUD operations."""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetlog.db.models import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, id: int) -> T | None:
        """Get entity by primary key."""
        return await self.session.get(self.model_class, id)

    async def get_for_tenant(self, tenant_id: str, id: int) -> T | None:
        """Get entity by primary key, only if it belongs to the tenant."""
        entity = await self.get_by_id(id)
        if entity is None or getattr(entity, "tenant_id", None) != tenant_id:
            return None
        return entity

    async def list_all(self) -> list[T]:
        """List all entities."""
        result = await self.session.execute(select(self.model_class))
        return list(result.scalars().all())

    async def create(self, entity: T) -> T:
        """Create new entity."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """Update existing entity."""
        await self.session.flush()
        await self.session.refresh(entity)
        return entity
