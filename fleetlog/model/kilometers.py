"""Domain models for odometer readings and their validation."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from fleetlog.db.models import KilometerLog, LogType


class KilometerSource(StrEnum):
    """Event stream a reading came from."""

    SHIFT_LOG = "shift_log"
    FUEL_RECORD = "fuel_record"


class ValidationCode(StrEnum):
    """Outcome codes of the creation-path validator."""

    INVALID_FORMAT = "INVALID_FORMAT"
    KILOMETER_BELOW_LAST = "KILOMETER_BELOW_LAST"
    HIGH_INCREMENT = "HIGH_INCREMENT"


@dataclass(frozen=True)
class LastKnownKilometer:
    """Latest reading of a unit, normalized across both event streams.

    Attributes:
        value: Odometer reading.
        date: Position of the reading on the unit's timeline, in fleet local time.
        source: Stream the reading came from.
        source_id: Primary key of the row in that stream.
        log_type: Shift log type, for shift-log sources only.
    """

    value: Decimal
    date: datetime
    source: KilometerSource
    source_id: int
    log_type: LogType | None = None


def merge_last_known(
    shift_log: LastKnownKilometer | None,
    fuel_record: LastKnownKilometer | None,
) -> LastKnownKilometer | None:
    """Pick the later of the two candidate readings.

    A tie goes to the shift log. Either side may be missing.
    """
    if shift_log is None:
        return fuel_record
    if fuel_record is None:
        return shift_log
    if shift_log.date >= fuel_record.date:
        return shift_log
    return fuel_record


@dataclass
class KilometerValidation:
    """Result of validating a new reading on the creation path.

    ``is_valid`` False means a hard rejection (``error`` is set). A valid
    result may still carry a soft ``warning`` the caller must surface.
    """

    is_valid: bool
    kilometers: Decimal | None = None
    last_known: LastKnownKilometer | None = None
    increment: Decimal | None = None
    error: ValidationCode | None = None
    warning: ValidationCode | None = None
    message: str | None = None

    @property
    def is_first_record(self) -> bool:
        return self.is_valid and self.last_known is None


class EditWarningCode(StrEnum):
    """Inconsistencies found when correcting an existing entry."""

    BELOW_PREVIOUS = "BELOW_PREVIOUS"
    ABOVE_NEXT = "ABOVE_NEXT"
    START_NOT_BELOW_SAME_DAY_END = "START_NOT_BELOW_SAME_DAY_END"
    END_NOT_ABOVE_SAME_DAY_START = "END_NOT_ABOVE_SAME_DAY_START"


@dataclass(frozen=True)
class EditWarning:
    """A non-fatal inconsistency with a suggested bound for the new value."""

    code: EditWarningCode
    message: str
    neighbor_id: int
    lower_bound: Decimal | None = None
    upper_bound: Decimal | None = None


@dataclass
class EditCheck:
    """Neighbor-aware consistency report for a proposed correction."""

    entry: KilometerLog
    kilometers: Decimal
    previous: KilometerLog | None = None
    next: KilometerLog | None = None
    same_day: KilometerLog | None = None
    warnings: list[EditWarning] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.warnings


@dataclass
class UnitKilometerStats:
    """Per-unit summary of shift logs over a date range."""

    unit_id: int
    operator_name: str
    unit_number: str
    total_logs: int = 0
    shift_start_logs: int = 0
    shift_end_logs: int = 0
    first_kilometer: Decimal | None = None
    last_kilometer: Decimal | None = None

    @property
    def total_distance(self) -> Decimal:
        if self.first_kilometer is None or self.last_kilometer is None:
            return Decimal("0")
        return self.last_kilometer - self.first_kilometer
