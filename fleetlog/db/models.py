"""SQLAlchemy ORM models for the FleetLog database."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from fleetlog.core.timezone import to_local


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ============================================================================
# Enumerations
# ============================================================================


class LogType(StrEnum):
    """Kind of odometer reading taken for a shift."""

    SHIFT_START = "SHIFT_START"
    SHIFT_END = "SHIFT_END"


class FuelType(StrEnum):
    """Fuel grades accepted on a fuel charge."""

    GAS = "GAS"
    GASOLINE = "GASOLINE"
    DIESEL = "DIESEL"


class PaymentStatus(StrEnum):
    """Whether a fuel charge has been paid."""

    PAID = "PAID"
    UNPAID = "UNPAID"


# ============================================================================
# Units
# ============================================================================


class Unit(Base):
    """A vehicle and its operator."""

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    operator_name: Mapped[str] = mapped_column(String(255))
    unit_number: Mapped[str] = mapped_column(String(64))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    kilometer_logs: Mapped[list["KilometerLog"]] = relationship(back_populates="unit")
    fuel_records: Mapped[list["FuelRecord"]] = relationship(back_populates="unit")

    __table_args__ = (
        UniqueConstraint("tenant_id", "unit_number", name="uq_units_tenant_number"),
    )


# ============================================================================
# Shift kilometer logs
# ============================================================================


class KilometerLog(Base):
    """Odometer reading captured at the start or end of a shift.

    At most one non-omitted row exists per (tenant, unit, date, type). An
    omitted row keeps the key and is reactivated instead of duplicated.
    """

    __tablename__ = "kilometer_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id", ondelete="CASCADE"))
    kilometers: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    log_type: Mapped[LogType] = mapped_column(Enum(LogType, native_enum=False, length=16))
    log_date: Mapped[date] = mapped_column(Date)
    log_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_omitted: Mapped[bool] = mapped_column(Boolean, default=False)

    unit: Mapped["Unit"] = relationship(back_populates="kilometer_logs")

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "unit_id", "log_date", "log_type",
            name="uq_kilometer_logs_tenant_unit_date_type",
        ),
        Index("ix_kilometer_logs_unit_timeline", "tenant_id", "unit_id", "log_date", "log_time"),
    )

    def timeline_position(self, timezone_str: str = "UTC") -> datetime:
        """Position of the entry on the unit's timeline, in fleet local time.

        ``log_date`` is a local calendar day while ``log_time`` is stored as
        UTC, so the time of logging is converted before the two are combined.
        """
        return datetime.combine(self.log_date, to_local(self.log_time, timezone_str).time())


# ============================================================================
# Fuel charges
# ============================================================================


class FuelRecord(Base):
    """A fuel purchase, optionally carrying an odometer reading."""

    __tablename__ = "fuel_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id", ondelete="CASCADE"))
    kilometers: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    liters: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    price_per_liter: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    fuel_type: Mapped[FuelType] = mapped_column(Enum(FuelType, native_enum=False, length=16))
    sale_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False, length=16)
    )
    payment_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    record_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    unit: Mapped["Unit"] = relationship(back_populates="fuel_records")

    __table_args__ = (
        Index("ix_fuel_records_unit_date", "tenant_id", "unit_id", "record_date"),
        Index("ix_fuel_records_sale_number", "tenant_id", "sale_number"),
        Index("ix_fuel_records_payment", "tenant_id", "payment_status"),
    )
