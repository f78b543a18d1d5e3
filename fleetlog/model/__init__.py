"""Domain models for FleetLog."""

from fleetlog.model.batch import BatchJob, OmittedUnit, ProcessedUnit, UnitRef
from fleetlog.model.kilometers import (
    EditCheck,
    EditWarning,
    EditWarningCode,
    KilometerSource,
    KilometerValidation,
    LastKnownKilometer,
    UnitKilometerStats,
    ValidationCode,
    merge_last_known,
)
from fleetlog.model.session import ConversationSession, ConversationState

__all__ = [
    "BatchJob",
    "ConversationSession",
    "ConversationState",
    "EditCheck",
    "EditWarning",
    "EditWarningCode",
    "KilometerSource",
    "KilometerValidation",
    "LastKnownKilometer",
    "OmittedUnit",
    "ProcessedUnit",
    "UnitKilometerStats",
    "UnitRef",
    "ValidationCode",
    "merge_last_known",
]
