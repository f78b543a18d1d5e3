"""Guided fuel-charge entry form.

Steps, one conversation state each:

unit -> kilometers -> liters -> price per liter -> amount confirmation ->
fuel type -> sale number -> payment status -> summary (save / cancel)

The draft lives in the session data bag under ``"draft"``.
"""

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from fleetlog import callbacks
from fleetlog.callbacks import encode_action
from fleetlog.channels.base import Button
from fleetlog.db.models import FuelType, PaymentStatus
from fleetlog.errors import DuplicateSaleNumber
from fleetlog.fuel.store import FuelStore, NewFuelRecord
from fleetlog.kilometers.store import KilometerStore
from fleetlog.kilometers.validator import KilometerValidator, describe_last_known, format_km
from fleetlog.model.batch import UnitRef
from fleetlog.model.kilometers import ValidationCode
from fleetlog.model.session import ConversationState
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

SALE_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,10}$")
_CURRENCY_NOISE = re.compile(r"[$,\s]")
CENTS = Decimal("0.01")
# Liters and price are NUMERIC(10, 2), the amount NUMERIC(12, 2).
MAX_QUANTITY_DIGITS = 8
MAX_AMOUNT_DIGITS = 10

FUEL_TYPE_LABELS = {
    FuelType.GAS: "Gas",
    FuelType.GASOLINE: "Gasoline",
    FuelType.DIESEL: "Diesel",
}
PAYMENT_LABELS = {
    PaymentStatus.PAID: "Paid",
    PaymentStatus.UNPAID: "Unpaid",
}

# States where input comes from buttons, not text
_BUTTON_STATES = (
    ConversationState.FUEL_AWAITING_AMOUNT_CONFIRM,
    ConversationState.FUEL_AWAITING_TYPE,
    ConversationState.FUEL_AWAITING_PAYMENT,
    ConversationState.FUEL_AWAITING_CONFIRM,
)


@dataclass
class FuelDraft:
    """Fields collected so far."""

    unit: UnitRef
    kilometers: Decimal | None = None
    liters: Decimal | None = None
    price_per_liter: Decimal | None = None
    amount: Decimal | None = None
    fuel_type: FuelType | None = None
    sale_number: str | None = None
    payment_status: PaymentStatus | None = None

    def to_record(self) -> NewFuelRecord:
        if self.liters is None or self.amount is None or self.fuel_type is None or self.payment_status is None:
            raise ValueError("Fuel draft is incomplete")
        return NewFuelRecord(
            unit_id=self.unit.id,
            kilometers=self.kilometers,
            liters=self.liters,
            price_per_liter=self.price_per_liter,
            amount=self.amount,
            fuel_type=self.fuel_type,
            sale_number=self.sale_number,
            payment_status=self.payment_status,
        )


def parse_positive_decimal(
    text: str,
    max_decimal_places: int = 2,
    max_integer_digits: int = MAX_QUANTITY_DIGITS,
) -> Decimal:
    """Parse a strictly positive quantity typed by the user.

    A comma is accepted as decimal separator.

    Raises:
        ValueError: With a message suitable for the user.
    """
    normalized = text.strip().replace(",", ".")
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        raise ValueError("Please enter a valid number greater than zero.") from None
    if not value.is_finite() or value <= 0:
        raise ValueError("Please enter a valid number greater than zero.")
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > max_decimal_places:
        raise ValueError(f"The value cannot have more than {max_decimal_places} decimal places.")
    if value.adjusted() >= max_integer_digits:
        raise ValueError(f"The value cannot have more than {max_integer_digits} digits before the decimal point.")
    return value


def parse_price(text: str) -> Decimal:
    """Parse a price, ignoring ``$``, thousands separators and spaces."""
    return parse_positive_decimal(_CURRENCY_NOISE.sub("", text))


class FuelEntryFlow:
    """Collects a fuel charge field by field and stores it."""

    def __init__(self, store: KilometerStore, validator: KilometerValidator, fuel_store: FuelStore):
        self.store = store
        self.validator = validator
        self.fuel_store = fuel_store

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.register_state(ConversationState.FUEL_AWAITING_KM, self.handle_kilometers)
        dispatcher.register_state(ConversationState.FUEL_AWAITING_LITERS, self.handle_liters)
        dispatcher.register_state(ConversationState.FUEL_AWAITING_PRICE, self.handle_price)
        dispatcher.register_state(ConversationState.FUEL_AWAITING_SALE_NUMBER, self.handle_sale_number)
        for state in _BUTTON_STATES:
            dispatcher.register_state(state, self._expect_buttons)

        dispatcher.register_action(callbacks.FUEL_UNIT, self.select_unit)
        dispatcher.register_action(callbacks.FUEL_AMOUNT_OK, self.confirm_amount)
        dispatcher.register_action(callbacks.FUEL_AMOUNT_FIX, self.fix_amount)
        dispatcher.register_action(callbacks.FUEL_TYPE, self.select_fuel_type)
        dispatcher.register_action(callbacks.FUEL_PAID, self.select_payment)
        dispatcher.register_action(callbacks.FUEL_SAVE, self.save)
        dispatcher.register_action(callbacks.FUEL_CANCEL, self.cancel)

    async def start(self, ctx: FlowContext) -> None:
        """Offer the tenant's active units. Abandons any flow in progress."""
        ctx.reset()
        units = await self.store.list_active_units(ctx.tenant_id)
        if not units:
            await ctx.reply("There are no units registered.")
            return

        buttons = [
            [Button(f"{unit.operator_name} - {unit.unit_number}", encode_action(callbacks.FUEL_UNIT, unit.id))]
            for unit in units
        ]
        buttons.append([Button("❌ Cancel", encode_action(callbacks.FUEL_CANCEL))])
        await ctx.reply("⛽ New fuel charge\n\nSelect the unit:", buttons=buttons)

    async def select_unit(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if not params or not params[0].isdigit():
            return False
        unit = await self.store.get_unit(ctx.tenant_id, int(params[0]))
        if unit is None or not unit.is_active:
            await ctx.reply("That unit is no longer available. Use /fuel to start again.")
            return None

        draft = FuelDraft(unit=UnitRef.from_unit(unit))
        ctx.transition(ConversationState.FUEL_AWAITING_KM, {"draft": draft})
        await ctx.reply(f"🚛 {draft.unit.label}\n\nEnter the current kilometers:")
        return None

    async def handle_kilometers(self, ctx: FlowContext) -> bool | None:
        draft = await self._draft(ctx)
        if draft is None:
            return None

        validation = await self.validator.validate_new_reading(ctx.tenant_id, draft.unit.id, ctx.event.text)
        if not validation.is_valid:
            message = f"❌ {validation.message}"
            if validation.error == ValidationCode.KILOMETER_BELOW_LAST and validation.last_known is not None:
                message += f"\n\n📊 Last reading: {describe_last_known(validation.last_known)}"
            await ctx.reply(message)
            return None

        draft.kilometers = validation.kilometers
        if validation.is_first_record:
            note = "✨ First kilometer record for this unit."
        elif validation.warning == ValidationCode.HIGH_INCREMENT:
            note = f"⚠️ {validation.message}"
        else:
            assert validation.increment is not None
            note = f"📈 Increment: +{format_km(validation.increment)} km"

        ctx.transition(ConversationState.FUEL_AWAITING_LITERS)
        await ctx.reply(f"{note}\n\nEnter the liters loaded:")
        return None

    async def handle_liters(self, ctx: FlowContext) -> bool | None:
        draft = await self._draft(ctx)
        if draft is None:
            return None
        try:
            draft.liters = parse_positive_decimal(ctx.event.text)
        except ValueError as e:
            await ctx.reply(f"❌ {e}")
            return None

        ctx.transition(ConversationState.FUEL_AWAITING_PRICE)
        await ctx.reply("Enter the price per liter:")
        return None

    async def handle_price(self, ctx: FlowContext) -> bool | None:
        draft = await self._draft(ctx)
        if draft is None:
            return None
        try:
            draft.price_per_liter = parse_price(ctx.event.text)
        except ValueError as e:
            await ctx.reply(f"❌ {e}")
            return None

        assert draft.liters is not None
        amount = draft.liters * draft.price_per_liter
        if amount.adjusted() >= MAX_AMOUNT_DIGITS:
            draft.price_per_liter = None
            await ctx.reply("❌ The total amount is too large. Enter the price per liter again:")
            return None
        draft.amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        ctx.transition(ConversationState.FUEL_AWAITING_AMOUNT_CONFIRM)
        await ctx.reply(
            "💰 Total amount:\n"
            f"• {format_km(draft.liters)} L × ${draft.price_per_liter:.2f} = ${draft.amount:.2f}\n\n"
            "Is this correct?",
            buttons=[[
                Button("✅ Yes", encode_action(callbacks.FUEL_AMOUNT_OK)),
                Button("❌ No, fix the price", encode_action(callbacks.FUEL_AMOUNT_FIX)),
            ]],
        )
        return None

    async def confirm_amount(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if await self._draft(ctx, ConversationState.FUEL_AWAITING_AMOUNT_CONFIRM) is None:
            return None
        ctx.transition(ConversationState.FUEL_AWAITING_TYPE)
        await ctx.reply(
            "Select the fuel type:",
            buttons=[[
                Button(label, encode_action(callbacks.FUEL_TYPE, fuel_type.value))
                for fuel_type, label in FUEL_TYPE_LABELS.items()
            ]],
        )
        return None

    async def fix_amount(self, ctx: FlowContext, params: list[str]) -> bool | None:
        draft = await self._draft(ctx, ConversationState.FUEL_AWAITING_AMOUNT_CONFIRM)
        if draft is None:
            return None
        draft.price_per_liter = None
        draft.amount = None
        ctx.transition(ConversationState.FUEL_AWAITING_PRICE)
        await ctx.reply("Enter the price per liter again:")
        return None

    async def select_fuel_type(self, ctx: FlowContext, params: list[str]) -> bool | None:
        draft = await self._draft(ctx, ConversationState.FUEL_AWAITING_TYPE)
        if draft is None:
            return None
        try:
            draft.fuel_type = FuelType(params[0])
        except (IndexError, ValueError):
            return False

        ctx.transition(ConversationState.FUEL_AWAITING_SALE_NUMBER)
        await ctx.reply("Enter the sale number (up to 10 letters, digits or dashes):")
        return None

    async def handle_sale_number(self, ctx: FlowContext) -> bool | None:
        draft = await self._draft(ctx)
        if draft is None:
            return None
        sale_number = ctx.event.text.strip()
        if not SALE_NUMBER_PATTERN.match(sale_number):
            await ctx.reply("❌ The sale number must be 1 to 10 letters, digits or dashes.")
            return None

        draft.sale_number = sale_number
        ctx.transition(ConversationState.FUEL_AWAITING_PAYMENT)
        await ctx.reply(
            "Payment status:",
            buttons=[[
                Button(label, encode_action(callbacks.FUEL_PAID, status.value))
                for status, label in PAYMENT_LABELS.items()
            ]],
        )
        return None

    async def select_payment(self, ctx: FlowContext, params: list[str]) -> bool | None:
        draft = await self._draft(ctx, ConversationState.FUEL_AWAITING_PAYMENT)
        if draft is None:
            return None
        try:
            draft.payment_status = PaymentStatus(params[0])
        except (IndexError, ValueError):
            return False

        ctx.transition(ConversationState.FUEL_AWAITING_CONFIRM)
        await ctx.reply(
            self.summary(draft),
            buttons=[[
                Button("💾 Save", encode_action(callbacks.FUEL_SAVE)),
                Button("❌ Cancel", encode_action(callbacks.FUEL_CANCEL)),
            ]],
        )
        return None

    async def save(self, ctx: FlowContext, params: list[str]) -> bool | None:
        draft = await self._draft(ctx, ConversationState.FUEL_AWAITING_CONFIRM)
        if draft is None:
            return None

        try:
            record = await self.fuel_store.create_fuel_record(ctx.tenant_id, draft.to_record(), ctx.user_id)
        except DuplicateSaleNumber as e:
            logger.info(f"Duplicate sale number {e.sale_number} for tenant {ctx.tenant_id}")
            draft.sale_number = None
            ctx.transition(ConversationState.FUEL_AWAITING_SALE_NUMBER)
            await ctx.reply(f"❌ Sale number {e.sale_number} is already registered. Enter a different one:")
            return None

        ctx.reset()
        await ctx.reply(f"✅ Fuel charge saved (#{record.id}).\n\n{self.summary(draft)}")
        return None

    async def cancel(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """Drop the fuel draft. Any other process in the session is left alone."""
        if not isinstance(ctx.data.get("draft"), FuelDraft):
            await ctx.reply_nothing_to_cancel("No fuel charge in progress.")
            return None
        ctx.reset()
        await ctx.reply("Fuel charge cancelled.")
        return None

    @staticmethod
    def summary(draft: FuelDraft) -> str:
        lines = [
            "📋 Fuel charge",
            f"🚛 Unit: {draft.unit.label}",
        ]
        if draft.kilometers is not None:
            lines.append(f"📊 Kilometers: {format_km(draft.kilometers)}")
        if draft.liters is not None:
            lines.append(f"⛽ Liters: {format_km(draft.liters)}")
        if draft.price_per_liter is not None:
            lines.append(f"💵 Price per liter: ${draft.price_per_liter:.2f}")
        if draft.amount is not None:
            lines.append(f"💰 Amount: ${draft.amount:.2f}")
        if draft.fuel_type is not None:
            lines.append(f"🛢️ Type: {FUEL_TYPE_LABELS[draft.fuel_type]}")
        if draft.sale_number is not None:
            lines.append(f"🧾 Sale number: {draft.sale_number}")
        if draft.payment_status is not None:
            lines.append(f"💳 Payment: {PAYMENT_LABELS[draft.payment_status]}")
        return "\n".join(lines)

    async def _expect_buttons(self, ctx: FlowContext) -> bool | None:
        await ctx.reply("Please use the buttons above, or /cancel to stop.")
        return None

    @staticmethod
    async def _draft(ctx: FlowContext, expected: ConversationState | None = None) -> FuelDraft | None:
        """The draft of the flow in progress, or None after telling the user it expired."""
        draft = ctx.data.get("draft")
        if not isinstance(draft, FuelDraft) or (expected is not None and ctx.state != expected):
            await ctx.reply("This fuel charge is no longer in progress. Use /fuel to start again.")
            return None
        return draft
