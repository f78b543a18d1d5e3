"""Storage contract for odometer data and its SQLAlchemy implementation."""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from fleetlog.core.timezone import to_local
from fleetlog.db.database import DatabaseManager
from fleetlog.db.models import KilometerLog, LogType, Unit
from fleetlog.db.repositories import FuelRepository, KilometerLogRepository, UnitRepository
from fleetlog.errors import DuplicateActiveEntry, EntryNotFound
from fleetlog.model.kilometers import (
    KilometerSource,
    LastKnownKilometer,
    UnitKilometerStats,
    merge_last_known,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class KilometerStore(ABC):
    """Operations the validator and the flows need from storage.

    Every operation is scoped by tenant id.
    """

    @abstractmethod
    async def find_last_known_kilometer(self, tenant_id: str, unit_id: int) -> LastKnownKilometer | None:
        """Latest reading of a unit across shift logs and fuel records."""
        ...

    @abstractmethod
    async def create_log_entry(
        self,
        tenant_id: str,
        unit_id: int,
        kilometers: Decimal,
        log_type: LogType,
        log_date: date,
        actor_id: str | None,
    ) -> KilometerLog:
        """Create a shift log entry, reactivating an omitted one for the same key.

        Raises:
            DuplicateActiveEntry: A non-omitted entry already exists for the key.
        """
        ...

    @abstractmethod
    async def list_entries_for_date(
        self,
        tenant_id: str,
        log_date: date,
        log_type: LogType | None = None,
    ) -> list[KilometerLog]:
        """Non-omitted entries of a day, with their unit loaded."""
        ...

    @abstractmethod
    async def list_active_units(self, tenant_id: str) -> list[Unit]:
        """Active units in batch order."""
        ...

    @abstractmethod
    async def get_unit(self, tenant_id: str, unit_id: int) -> Unit | None:
        """A unit of the tenant, or None."""
        ...

    @abstractmethod
    async def get_entry(self, tenant_id: str, entry_id: int) -> KilometerLog:
        """An entry of the tenant with its unit loaded.

        Raises:
            EntryNotFound: No such entry for this tenant.
        """
        ...

    @abstractmethod
    async def find_neighbors(self, entry: KilometerLog) -> tuple[KilometerLog | None, KilometerLog | None]:
        """Nearest strictly-earlier and strictly-later entries of the same unit."""
        ...

    @abstractmethod
    async def find_same_day_counterpart(self, entry: KilometerLog) -> KilometerLog | None:
        """The other shift's entry of the same unit and day, if any."""
        ...

    @abstractmethod
    async def update_entry_kilometers(
        self, tenant_id: str, entry_id: int, kilometers: Decimal, actor_id: str | None
    ) -> KilometerLog:
        """Overwrite an entry's reading without any validation."""
        ...

    @abstractmethod
    async def omit_log_entry(self, tenant_id: str, entry_id: int) -> KilometerLog:
        """Soft-delete an entry."""
        ...

    @abstractmethod
    async def list_recent_entries(self, tenant_id: str, limit: int = 10) -> list[KilometerLog]:
        """Most recently logged entries, newest first."""
        ...

    @abstractmethod
    async def kilometer_stats(
        self,
        tenant_id: str,
        start: date,
        end: date,
        unit_id: int | None = None,
    ) -> list[UnitKilometerStats]:
        """Per-unit statistics over shift logs in a date range."""
        ...


class SqlKilometerStore(KilometerStore):
    """KilometerStore backed by the relational database.

    Shift logs and fuel records are merged on the fleet's local clock given
    by ``timezone``.
    """

    def __init__(self, db: DatabaseManager, timezone: str = "UTC"):
        self._db = db
        self.timezone = timezone

    async def find_last_known_kilometer(self, tenant_id: str, unit_id: int) -> LastKnownKilometer | None:
        async with self._db.session() as session:
            last_log = await KilometerLogRepository(session).latest_for_unit(tenant_id, unit_id)
            last_fuel = await FuelRepository(session).latest_with_kilometers(tenant_id, unit_id)

        from_log = None
        if last_log is not None:
            from_log = LastKnownKilometer(
                value=last_log.kilometers,
                date=last_log.timeline_position(self.timezone),
                source=KilometerSource.SHIFT_LOG,
                source_id=last_log.id,
                log_type=last_log.log_type,
            )

        from_fuel = None
        if last_fuel is not None and last_fuel.kilometers is not None:
            from_fuel = LastKnownKilometer(
                value=last_fuel.kilometers,
                date=to_local(last_fuel.record_date, self.timezone),
                source=KilometerSource.FUEL_RECORD,
                source_id=last_fuel.id,
            )

        last_known = merge_last_known(from_log, from_fuel)
        logger.debug(
            f"Last known kilometer for unit {unit_id} (tenant {tenant_id}): "
            f"{last_known.value if last_known else 'none'}"
        )
        return last_known

    async def create_log_entry(
        self,
        tenant_id: str,
        unit_id: int,
        kilometers: Decimal,
        log_type: LogType,
        log_date: date,
        actor_id: str | None,
    ) -> KilometerLog:
        try:
            async with self._db.session() as session:
                repo = KilometerLogRepository(session)
                existing = await repo.get_by_key(tenant_id, unit_id, log_date, log_type)

                if existing is not None and not existing.is_omitted:
                    raise DuplicateActiveEntry(tenant_id, unit_id, log_date, log_type)

                if existing is not None:
                    existing.kilometers = kilometers
                    existing.user_id = actor_id
                    existing.is_omitted = False
                    existing.log_time = _utcnow()
                    entry = await repo.update(existing)
                    logger.info(f"Reactivated omitted {log_type} entry {entry.id} for unit {unit_id}")
                    return entry

                entry = await repo.create(
                    KilometerLog(
                        tenant_id=tenant_id,
                        unit_id=unit_id,
                        kilometers=kilometers,
                        log_type=log_type,
                        log_date=log_date,
                        log_time=_utcnow(),
                        user_id=actor_id,
                        is_omitted=False,
                    )
                )
        except IntegrityError as e:
            # Another writer inserted the same key between our check and insert
            raise DuplicateActiveEntry(tenant_id, unit_id, log_date, log_type) from e

        logger.info(f"Created {log_type} entry {entry.id} for unit {unit_id}: {kilometers} km")
        return entry

    async def list_entries_for_date(
        self,
        tenant_id: str,
        log_date: date,
        log_type: LogType | None = None,
    ) -> list[KilometerLog]:
        async with self._db.session() as session:
            return await KilometerLogRepository(session).list_for_date(tenant_id, log_date, log_type)

    async def list_active_units(self, tenant_id: str) -> list[Unit]:
        async with self._db.session() as session:
            return await UnitRepository(session).list_active(tenant_id)

    async def get_unit(self, tenant_id: str, unit_id: int) -> Unit | None:
        async with self._db.session() as session:
            return await UnitRepository(session).get_for_tenant(tenant_id, unit_id)

    async def get_entry(self, tenant_id: str, entry_id: int) -> KilometerLog:
        async with self._db.session() as session:
            entry = await KilometerLogRepository(session).get_with_unit(tenant_id, entry_id)
        if entry is None:
            raise EntryNotFound(tenant_id, entry_id)
        return entry

    async def find_neighbors(self, entry: KilometerLog) -> tuple[KilometerLog | None, KilometerLog | None]:
        async with self._db.session() as session:
            repo = KilometerLogRepository(session)
            return await repo.previous_entry(entry), await repo.next_entry(entry)

    async def find_same_day_counterpart(self, entry: KilometerLog) -> KilometerLog | None:
        other_type = LogType.SHIFT_END if entry.log_type == LogType.SHIFT_START else LogType.SHIFT_START
        async with self._db.session() as session:
            counterpart = await KilometerLogRepository(session).get_by_key(
                entry.tenant_id, entry.unit_id, entry.log_date, other_type
            )
        if counterpart is None or counterpart.is_omitted:
            return None
        return counterpart

    async def update_entry_kilometers(
        self, tenant_id: str, entry_id: int, kilometers: Decimal, actor_id: str | None
    ) -> KilometerLog:
        async with self._db.session() as session:
            repo = KilometerLogRepository(session)
            entry = await repo.get_with_unit(tenant_id, entry_id)
            if entry is None:
                raise EntryNotFound(tenant_id, entry_id)
            previous_value = entry.kilometers
            entry.kilometers = kilometers
            entry.user_id = actor_id
            await session.flush()

        logger.info(f"Entry {entry_id} kilometers updated: {previous_value} -> {kilometers} by {actor_id}")
        return entry

    async def omit_log_entry(self, tenant_id: str, entry_id: int) -> KilometerLog:
        async with self._db.session() as session:
            repo = KilometerLogRepository(session)
            entry = await repo.get_with_unit(tenant_id, entry_id)
            if entry is None:
                raise EntryNotFound(tenant_id, entry_id)
            entry.is_omitted = True
            await session.flush()

        logger.info(f"Entry {entry_id} marked as omitted")
        return entry

    async def list_recent_entries(self, tenant_id: str, limit: int = 10) -> list[KilometerLog]:
        async with self._db.session() as session:
            return await KilometerLogRepository(session).list_recent(tenant_id, limit)

    async def kilometer_stats(
        self,
        tenant_id: str,
        start: date,
        end: date,
        unit_id: int | None = None,
    ) -> list[UnitKilometerStats]:
        async with self._db.session() as session:
            logs = await KilometerLogRepository(session).list_in_range(tenant_id, start, end, unit_id)

        stats_by_unit: dict[int, UnitKilometerStats] = {}
        for log in logs:
            stats = stats_by_unit.get(log.unit_id)
            if stats is None:
                stats = UnitKilometerStats(
                    unit_id=log.unit_id,
                    operator_name=log.unit.operator_name,
                    unit_number=log.unit.unit_number,
                )
                stats_by_unit[log.unit_id] = stats

            stats.total_logs += 1
            if log.log_type == LogType.SHIFT_START:
                stats.shift_start_logs += 1
            else:
                stats.shift_end_logs += 1

            if stats.first_kilometer is None or log.kilometers < stats.first_kilometer:
                stats.first_kilometer = log.kilometers
            if stats.last_kilometer is None or log.kilometers > stats.last_kilometer:
                stats.last_kilometer = log.kilometers

        logger.debug(f"Kilometer stats for {len(stats_by_unit)} unit(s) of tenant {tenant_id}")
        return list(stats_by_unit.values())
