"""Domain models for conversation sessions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class ConversationState(StrEnum):
    """Every state a conversation can be in."""

    IDLE = "idle"

    # Shift batch
    BATCH_CAPTURING_KM = "batch_capturing_km"

    # Fuel-charge entry form
    FUEL_AWAITING_KM = "fuel_awaiting_km"
    FUEL_AWAITING_LITERS = "fuel_awaiting_liters"
    FUEL_AWAITING_PRICE = "fuel_awaiting_price"
    FUEL_AWAITING_AMOUNT_CONFIRM = "fuel_awaiting_amount_confirm"
    FUEL_AWAITING_TYPE = "fuel_awaiting_type"
    FUEL_AWAITING_SALE_NUMBER = "fuel_awaiting_sale_number"
    FUEL_AWAITING_PAYMENT = "fuel_awaiting_payment"
    FUEL_AWAITING_CONFIRM = "fuel_awaiting_confirm"

    # Fuel payment tracking
    PAY_AWAITING_SALE_NUMBER = "pay_awaiting_sale_number"
    PAY_AWAITING_CONFIRM = "pay_awaiting_confirm"

    # Administrative kilometer correction
    KM_EDITING_VALUE = "km_editing_value"
    KM_AWAITING_FORCE = "km_awaiting_force"


@dataclass
class ConversationSession:
    """State label plus the data bag of the flow in progress.

    Each flow keeps a single typed object in ``data`` (the batch job, the
    fuel draft, the edit target); ``data`` is empty whenever the state is
    idle.

    Attributes:
        state: Current state.
        data: Flow-scoped data.
        last_active_at: Last time the session transitioned.
    """

    state: ConversationState = ConversationState.IDLE
    data: dict[str, Any] = field(default_factory=dict)
    last_active_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_idle(self) -> bool:
        return self.state == ConversationState.IDLE
