"""Odometer validation.

Two entry points share the same comparisons but differ in strictness:

- ``validate_new_reading`` is used while capturing readings. Anything below
  the unit's last known value is rejected outright.
- ``check_edit`` is used when an administrator corrects an existing entry.
  Inconsistencies with the neighboring entries come back as warnings with
  suggested bounds, and the caller may still force the update.
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from fleetlog.db.models import KilometerLog, LogType
from fleetlog.kilometers.store import KilometerStore
from fleetlog.model.kilometers import (
    EditCheck,
    EditWarning,
    EditWarningCode,
    KilometerSource,
    KilometerValidation,
    LastKnownKilometer,
    ValidationCode,
)

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"^\d+(?:\.(\d+))?$")

# Readings are stored as NUMERIC(12, 2).
MAX_INTEGER_DIGITS = 10

SOURCE_LABELS = {
    KilometerSource.SHIFT_LOG: "shift log",
    KilometerSource.FUEL_RECORD: "fuel record",
}


def format_km(value: Decimal) -> str:
    """Render a reading without trailing zeros noise (``1000``, ``1000.5``)."""
    normalized = value.quantize(Decimal("0.01"))
    text = f"{normalized:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def describe_last_known(last_known: LastKnownKilometer) -> str:
    """One-line description of a last known reading for user messages."""
    source = SOURCE_LABELS[last_known.source]
    return f"{format_km(last_known.value)} km on {last_known.date:%Y-%m-%d} ({source})"


class KilometerValidator:
    """Validates odometer readings against a unit's history."""

    def __init__(
        self,
        store: KilometerStore,
        high_increment_threshold: Decimal = Decimal("1000"),
        max_decimal_places: int = 2,
    ):
        self.store = store
        self.high_increment_threshold = Decimal(high_increment_threshold)
        self.max_decimal_places = max_decimal_places

    def check_format(self, candidate: str | int | float | Decimal) -> KilometerValidation:
        """Parse a candidate reading.

        Text accepts a comma as decimal separator. Anything that is not a
        non-negative number with at most ``max_decimal_places`` decimals and
        ``MAX_INTEGER_DIGITS`` integer digits is an INVALID_FORMAT error.
        """
        if isinstance(candidate, str):
            text = candidate.strip().replace(",", ".")
            match = _NUMBER_PATTERN.match(text)
            if not match:
                return self._invalid("Kilometers must be a number greater than or equal to zero.")
            if match.group(1) and len(match.group(1)) > self.max_decimal_places:
                return self._too_many_decimals()
            value = Decimal(text)
        else:
            try:
                value = Decimal(str(candidate)) if isinstance(candidate, float) else Decimal(candidate)
            except (InvalidOperation, TypeError, ValueError):
                return self._invalid("Kilometers must be a number greater than or equal to zero.")
            if not value.is_finite() or value < 0:
                return self._invalid("Kilometers must be a number greater than or equal to zero.")
            exponent = value.as_tuple().exponent
            if isinstance(exponent, int) and -exponent > self.max_decimal_places:
                return self._too_many_decimals()

        if value.adjusted() >= MAX_INTEGER_DIGITS:
            return self._invalid(f"Kilometers must have at most {MAX_INTEGER_DIGITS} digits before the decimal point.")

        return KilometerValidation(is_valid=True, kilometers=value.quantize(Decimal("0.01")))

    async def validate_new_reading(
        self,
        tenant_id: str,
        unit_id: int,
        candidate: str | int | float | Decimal,
    ) -> KilometerValidation:
        """Validate a reading about to be recorded for a unit.

        Returns:
            A rejected result (INVALID_FORMAT, KILOMETER_BELOW_LAST), an
            accepted result with a HIGH_INCREMENT warning, or a plain
            accepted result. The first reading of a unit is always accepted.
        """
        result = self.check_format(candidate)
        if not result.is_valid:
            return result
        kilometers = result.kilometers
        assert kilometers is not None

        last_known = await self.store.find_last_known_kilometer(tenant_id, unit_id)
        if last_known is None:
            logger.info(f"First kilometer record for unit {unit_id}: {kilometers}")
            return KilometerValidation(is_valid=True, kilometers=kilometers)

        if kilometers < last_known.value:
            logger.info(f"Rejected {kilometers} km for unit {unit_id}: below last known {last_known.value}")
            return KilometerValidation(
                is_valid=False,
                kilometers=kilometers,
                last_known=last_known,
                error=ValidationCode.KILOMETER_BELOW_LAST,
                message=(
                    f"The reading ({format_km(kilometers)}) cannot be lower than the last "
                    f"recorded one ({format_km(last_known.value)})."
                ),
            )

        increment = kilometers - last_known.value
        if increment > self.high_increment_threshold:
            logger.warning(f"High kilometer increment for unit {unit_id}: +{increment}")
            return KilometerValidation(
                is_valid=True,
                kilometers=kilometers,
                last_known=last_known,
                increment=increment,
                warning=ValidationCode.HIGH_INCREMENT,
                message=f"Very high increment: {format_km(increment)} km. Please double-check the reading.",
            )

        return KilometerValidation(
            is_valid=True,
            kilometers=kilometers,
            last_known=last_known,
            increment=increment,
        )

    async def check_edit(self, entry: KilometerLog, kilometers: Decimal) -> EditCheck:
        """Check a corrected value against the entry's neighbors.

        Compares with the nearest earlier and later entries of the same unit
        regardless of log type, and with the same day's other shift: a shift
        start must stay below that day's shift end. Violations are reported
        as warnings with suggested bounds; nothing is rejected here.
        """
        previous, following = await self.store.find_neighbors(entry)
        same_day = await self.store.find_same_day_counterpart(entry)
        check = EditCheck(
            entry=entry,
            kilometers=kilometers,
            previous=previous,
            next=following,
            same_day=same_day,
        )

        if same_day is not None:
            if entry.log_type == LogType.SHIFT_START and kilometers >= same_day.kilometers:
                check.warnings.append(
                    EditWarning(
                        code=EditWarningCode.START_NOT_BELOW_SAME_DAY_END,
                        message=(
                            f"The shift end of the same day is {format_km(same_day.kilometers)} km; "
                            f"a shift start must be lower. Use a value below {format_km(same_day.kilometers)}."
                        ),
                        neighbor_id=same_day.id,
                        upper_bound=same_day.kilometers,
                    )
                )
            elif entry.log_type == LogType.SHIFT_END and kilometers <= same_day.kilometers:
                check.warnings.append(
                    EditWarning(
                        code=EditWarningCode.END_NOT_ABOVE_SAME_DAY_START,
                        message=(
                            f"The shift start of the same day is {format_km(same_day.kilometers)} km; "
                            f"a shift end must be higher. Use a value above {format_km(same_day.kilometers)}."
                        ),
                        neighbor_id=same_day.id,
                        lower_bound=same_day.kilometers,
                    )
                )

        flagged = {warning.neighbor_id for warning in check.warnings}

        if previous is not None and previous.id not in flagged and kilometers < previous.kilometers:
            check.warnings.append(
                EditWarning(
                    code=EditWarningCode.BELOW_PREVIOUS,
                    message=(
                        f"The previous entry ({previous.log_type}, {previous.log_date:%Y-%m-%d}) is "
                        f"{format_km(previous.kilometers)} km. Use a value of at least "
                        f"{format_km(previous.kilometers)}."
                    ),
                    neighbor_id=previous.id,
                    lower_bound=previous.kilometers,
                )
            )

        if following is not None and following.id not in flagged and kilometers > following.kilometers:
            check.warnings.append(
                EditWarning(
                    code=EditWarningCode.ABOVE_NEXT,
                    message=(
                        f"The next entry ({following.log_type}, {following.log_date:%Y-%m-%d}) is "
                        f"{format_km(following.kilometers)} km. Use a value no greater than "
                        f"{format_km(following.kilometers)}."
                    ),
                    neighbor_id=following.id,
                    upper_bound=following.kilometers,
                )
            )

        if check.warnings:
            logger.warning(
                f"Edit of entry {entry.id} to {kilometers} km is inconsistent: "
                f"{', '.join(w.code for w in check.warnings)}"
            )
        return check

    def _invalid(self, message: str) -> KilometerValidation:
        return KilometerValidation(is_valid=False, error=ValidationCode.INVALID_FORMAT, message=message)

    def _too_many_decimals(self) -> KilometerValidation:
        return self._invalid(f"Kilometers cannot have more than {self.max_decimal_places} decimal places.")
