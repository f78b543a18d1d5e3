"""Storage contract for fuel-charge records and its SQLAlchemy implementation."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from fleetlog.db.database import DatabaseManager
from fleetlog.db.models import FuelRecord, FuelType, PaymentStatus
from fleetlog.db.repositories import FuelRepository
from fleetlog.errors import DuplicateSaleNumber, EntryNotFound, FuelRecordAlreadyPaid

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass
class NewFuelRecord:
    """Validated fields of a fuel charge ready to be stored."""

    unit_id: int
    liters: Decimal
    amount: Decimal
    fuel_type: FuelType
    payment_status: PaymentStatus
    kilometers: Decimal | None = None
    price_per_liter: Decimal | None = None
    sale_number: str | None = None
    record_date: datetime | None = None


@dataclass
class PendingBalance:
    """What the tenant still owes for fuel."""

    total: Decimal
    count: int


class FuelStore(ABC):
    """Operations the fuel-charge form and payment tracking need from storage."""

    @abstractmethod
    async def create_fuel_record(self, tenant_id: str, record: NewFuelRecord, actor_id: str | None) -> FuelRecord:
        """Store a fuel charge.

        Raises:
            DuplicateSaleNumber: An active record of the tenant already uses the sale number.
        """
        ...

    @abstractmethod
    async def pending_balance(self, tenant_id: str) -> PendingBalance:
        """Total amount and number of active unpaid fuel records."""
        ...

    @abstractmethod
    async def list_unpaid(self, tenant_id: str, limit: int = 20) -> list[FuelRecord]:
        """Oldest active unpaid fuel records with their unit loaded."""
        ...

    @abstractmethod
    async def find_by_sale_number(self, tenant_id: str, sale_number: str) -> FuelRecord | None:
        """The active fuel record carrying this sale number, unit loaded."""
        ...

    @abstractmethod
    async def mark_paid(self, tenant_id: str, record_id: int) -> FuelRecord:
        """Set an unpaid record to PAID and stamp the payment date.

        Raises:
            EntryNotFound: No active record with this id for the tenant.
            FuelRecordAlreadyPaid: The record was already paid.
        """
        ...


class SqlFuelStore(FuelStore):
    """FuelStore backed by the relational database."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    async def create_fuel_record(self, tenant_id: str, record: NewFuelRecord, actor_id: str | None) -> FuelRecord:
        async with self._db.session() as session:
            repo = FuelRepository(session)
            if record.sale_number:
                existing = await repo.find_active_by_sale_number(tenant_id, record.sale_number)
                if existing is not None:
                    raise DuplicateSaleNumber(tenant_id, record.sale_number)

            fuel = await repo.create(
                FuelRecord(
                    tenant_id=tenant_id,
                    unit_id=record.unit_id,
                    kilometers=record.kilometers,
                    liters=record.liters,
                    price_per_liter=record.price_per_liter,
                    amount=record.amount,
                    fuel_type=record.fuel_type,
                    sale_number=record.sale_number,
                    payment_status=record.payment_status,
                    record_date=record.record_date or _utcnow(),
                    payment_date=_utcnow() if record.payment_status == PaymentStatus.PAID else None,
                    user_id=actor_id,
                    is_active=True,
                )
            )

        logger.info(f"Fuel record {fuel.id} created for unit {record.unit_id}: {record.liters} L, ${record.amount}")
        return fuel

    async def pending_balance(self, tenant_id: str) -> PendingBalance:
        async with self._db.session() as session:
            total, count = await FuelRepository(session).unpaid_totals(tenant_id)
        return PendingBalance(total=total.quantize(Decimal("0.01")), count=count)

    async def list_unpaid(self, tenant_id: str, limit: int = 20) -> list[FuelRecord]:
        async with self._db.session() as session:
            return await FuelRepository(session).list_unpaid(tenant_id, limit)

    async def find_by_sale_number(self, tenant_id: str, sale_number: str) -> FuelRecord | None:
        async with self._db.session() as session:
            return await FuelRepository(session).find_active_by_sale_number(tenant_id, sale_number)

    async def mark_paid(self, tenant_id: str, record_id: int) -> FuelRecord:
        async with self._db.session() as session:
            repo = FuelRepository(session)
            fuel = await repo.get_active_with_unit(tenant_id, record_id)
            if fuel is None:
                raise EntryNotFound(tenant_id, record_id)
            if fuel.payment_status == PaymentStatus.PAID:
                raise FuelRecordAlreadyPaid(tenant_id, record_id)
            fuel.payment_status = PaymentStatus.PAID
            fuel.payment_date = _utcnow()
            await session.flush()

        logger.info(f"Fuel record {record_id} of tenant {tenant_id} marked as paid (${fuel.amount})")
        return fuel
