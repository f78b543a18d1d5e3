"""Pending fuel payments: balance view and marking a charge as paid.

A charge is found by its sale number, shown for confirmation, then set to
PAID with the payment date stamped. Marking is limited to tenant
administrators; the balance is visible to every member.
"""

import logging
from dataclasses import dataclass

from fleetlog import callbacks
from fleetlog.callbacks import encode_action
from fleetlog.channels.base import Button
from fleetlog.core.timezone import to_local
from fleetlog.db.models import FuelRecord, PaymentStatus
from fleetlog.errors import EntryNotFound, FuelRecordAlreadyPaid
from fleetlog.flows.fuel import FUEL_TYPE_LABELS, SALE_NUMBER_PATTERN
from fleetlog.fuel.store import FuelStore
from fleetlog.kilometers.validator import format_km
from fleetlog.model.session import ConversationState
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

BALANCE_LIST_LIMIT = 10

_PAY_STATES = (ConversationState.PAY_AWAITING_SALE_NUMBER, ConversationState.PAY_AWAITING_CONFIRM)


@dataclass
class PaymentTarget:
    """Fuel record found by sale number and waiting for confirmation."""

    record_id: int
    sale_number: str


class FuelPaymentFlow:
    """Show what is owed for fuel and record payments."""

    def __init__(self, fuel_store: FuelStore, timezone: str = "UTC"):
        self.fuel_store = fuel_store
        self.timezone = timezone

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.register_state(ConversationState.PAY_AWAITING_SALE_NUMBER, self.handle_sale_number)
        dispatcher.register_state(ConversationState.PAY_AWAITING_CONFIRM, self._expect_buttons)
        dispatcher.register_action(callbacks.PAY_SEARCH, self.start_search)
        dispatcher.register_action(callbacks.PAY_CONFIRM, self.confirm)
        dispatcher.register_action(callbacks.PAY_CANCEL, self.cancel)

    async def show_balance(self, ctx: FlowContext) -> None:
        """Pending total plus the oldest unpaid charges."""
        balance = await self.fuel_store.pending_balance(ctx.tenant_id)
        if balance.count == 0:
            await ctx.reply("✅ No pending fuel payments.")
            return

        lines = [
            f"💰 Pending balance: ${balance.total:.2f}",
            f"Unpaid charges: {balance.count}",
            "",
        ]
        for fuel in await self.fuel_store.list_unpaid(ctx.tenant_id, BALANCE_LIST_LIMIT):
            lines.append(f"• {self._short(fuel)}")
        if balance.count > BALANCE_LIST_LIMIT:
            lines.append(f"… and {balance.count - BALANCE_LIST_LIMIT} more")

        await ctx.reply(
            "\n".join(lines),
            buttons=[[Button("🔍 Mark a charge as paid", encode_action(callbacks.PAY_SEARCH))]],
        )

    async def start_search(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """Ask for the sale number. Abandons any flow in progress."""
        if not await self._require_admin(ctx):
            return None
        ctx.reset()
        ctx.transition(ConversationState.PAY_AWAITING_SALE_NUMBER)
        await ctx.reply(
            "🔍 Enter the sale number of the charge to mark as paid:",
            buttons=[[Button("❌ Cancel", encode_action(callbacks.PAY_CANCEL))]],
        )
        return None

    async def handle_sale_number(self, ctx: FlowContext) -> bool | None:
        sale_number = ctx.event.text.strip()
        if not SALE_NUMBER_PATTERN.match(sale_number):
            await ctx.reply("❌ The sale number must be 1 to 10 letters, digits or dashes.")
            return None

        fuel = await self.fuel_store.find_by_sale_number(ctx.tenant_id, sale_number)
        if fuel is None:
            await ctx.reply(f"⚠️ No charge found with sale number {sale_number}. Check it and try again, or cancel.")
            return None

        if fuel.payment_status == PaymentStatus.PAID:
            ctx.reset()
            await ctx.reply(
                f"⚠️ Sale {sale_number} is already paid.\nPayment date: {self._payment_date(fuel)}",
                buttons=[[Button("🔍 Search another", encode_action(callbacks.PAY_SEARCH))]],
            )
            return None

        ctx.transition(ConversationState.PAY_AWAITING_CONFIRM, {"payment": PaymentTarget(fuel.id, sale_number)})
        await ctx.reply(
            self.details(fuel),
            buttons=[[
                Button("✅ Mark as paid", encode_action(callbacks.PAY_CONFIRM, fuel.id)),
                Button("❌ Cancel", encode_action(callbacks.PAY_CANCEL)),
            ]],
        )
        return None

    async def confirm(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if not params or not params[0].isdigit():
            return False
        if not await self._require_admin(ctx):
            return None

        try:
            fuel = await self.fuel_store.mark_paid(ctx.tenant_id, int(params[0]))
        except EntryNotFound:
            self._leave(ctx)
            await ctx.reply("That charge no longer exists.")
            return None
        except FuelRecordAlreadyPaid:
            self._leave(ctx)
            await ctx.reply("That charge was already paid.")
            return None

        self._leave(ctx)
        logger.info(f"Fuel record {fuel.id} marked as paid by {ctx.user_id}")
        await ctx.reply(
            f"✅ Sale {fuel.sale_number or fuel.id} marked as paid.\nPayment date: {self._payment_date(fuel)}"
        )
        return None

    async def cancel(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if ctx.state not in _PAY_STATES:
            await ctx.reply_nothing_to_cancel("No payment in progress.")
            return None
        target = ctx.data.get("payment")
        ctx.reset()
        if isinstance(target, PaymentTarget):
            await ctx.reply(f"Payment cancelled. Sale {target.sale_number} is still unpaid.")
        else:
            await ctx.reply("Payment cancelled.")
        return None

    def details(self, fuel: FuelRecord) -> str:
        lines = [
            f"💳 Status: {fuel.payment_status.value}",
            "",
            f"🧾 Sale number: {fuel.sale_number}",
            f"🚛 Unit: {fuel.unit.unit_number} ({fuel.unit.operator_name})",
            f"🛢️ Type: {FUEL_TYPE_LABELS[fuel.fuel_type]}",
            f"📅 Date: {to_local(fuel.record_date, self.timezone):%Y-%m-%d %H:%M}",
            f"⛽ Liters: {format_km(fuel.liters)}",
            f"💰 Amount: ${fuel.amount:.2f}",
        ]
        return "\n".join(lines)

    def _short(self, fuel: FuelRecord) -> str:
        sale = fuel.sale_number or "no sale number"
        return (
            f"{to_local(fuel.record_date, self.timezone):%Y-%m-%d} · {fuel.unit.unit_number} · "
            f"{sale}: ${fuel.amount:.2f}"
        )

    def _payment_date(self, fuel: FuelRecord) -> str:
        if fuel.payment_date is None:
            return "not recorded"
        return f"{to_local(fuel.payment_date, self.timezone):%Y-%m-%d %H:%M}"

    @staticmethod
    def _leave(ctx: FlowContext) -> None:
        if ctx.state in _PAY_STATES:
            ctx.reset()

    async def _require_admin(self, ctx: FlowContext) -> bool:
        if ctx.tenant.is_admin(ctx.user_id):
            return True
        logger.info(f"User {ctx.user_id} denied payment management")
        await ctx.reply("This action is only available to administrators.")
        return False

    async def _expect_buttons(self, ctx: FlowContext) -> bool | None:
        await ctx.reply("Please use the buttons above, or /cancel to stop.")
        return None
