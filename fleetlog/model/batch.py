"""In-memory batch job for shift odometer collection."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from fleetlog.db.models import LogType, Unit


@dataclass(frozen=True)
class UnitRef:
    """Snapshot of a unit taken when the batch was planned."""

    id: int
    operator_name: str
    unit_number: str

    @classmethod
    def from_unit(cls, unit: Unit) -> "UnitRef":
        return cls(id=unit.id, operator_name=unit.operator_name, unit_number=unit.unit_number)

    @property
    def label(self) -> str:
        return f"{self.operator_name} - {self.unit_number}"


@dataclass(frozen=True)
class ProcessedUnit:
    """A unit whose reading is on record for the batch's date and type.

    ``already_logged`` marks a unit found logged by someone else while the
    batch was running; it then has no kilometers or entry of its own.
    """

    unit: UnitRef
    kilometers: Decimal | None
    entry_id: int | None
    already_logged: bool = False


@dataclass(frozen=True)
class OmittedUnit:
    """A unit skipped by the operator, or dropped after a storage error."""

    unit: UnitRef
    error: str | None = None


@dataclass
class BatchJob:
    """Queue of units that still need one reading each.

    Invariant: ``len(processed) + len(omitted) == current_index``.
    """

    log_type: LogType
    log_date: date
    pending: list[UnitRef]
    current_index: int = 0
    processed: list[ProcessedUnit] = field(default_factory=list)
    omitted: list[OmittedUnit] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pending)

    @property
    def remaining(self) -> int:
        return len(self.pending) - self.current_index

    @property
    def is_finished(self) -> bool:
        return self.current_index >= len(self.pending)

    @property
    def current_unit(self) -> UnitRef:
        if self.is_finished:
            raise IndexError("Batch job has no units left")
        return self.pending[self.current_index]

    def record_processed(self, kilometers: Decimal, entry_id: int) -> ProcessedUnit:
        """Record the current unit's accepted reading and advance."""
        item = ProcessedUnit(unit=self.current_unit, kilometers=kilometers, entry_id=entry_id)
        self.processed.append(item)
        self.current_index += 1
        return item

    def record_already_logged(self) -> ProcessedUnit:
        """Count the current unit as processed by a concurrent entry and advance."""
        item = ProcessedUnit(unit=self.current_unit, kilometers=None, entry_id=None, already_logged=True)
        self.processed.append(item)
        self.current_index += 1
        return item

    def record_omitted(self, error: str | None = None) -> OmittedUnit:
        """Skip the current unit and advance."""
        item = OmittedUnit(unit=self.current_unit, error=error)
        self.omitted.append(item)
        self.current_index += 1
        return item
