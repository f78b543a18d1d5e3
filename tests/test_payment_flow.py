"""Tests for pending fuel payments: balance, lookup by sale number, marking paid."""

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import ADMIN_ID, TENANT, action_event, command_event, session_key, text_event
from fleetlog import callbacks
from fleetlog.callbacks import encode_action
from fleetlog.db.models import FuelType, PaymentStatus
from fleetlog.errors import EntryNotFound, FuelRecordAlreadyPaid
from fleetlog.flows.payments import FuelPaymentFlow
from fleetlog.fuel.store import NewFuelRecord
from fleetlog.model.session import ConversationState


@pytest.fixture
def add_charge(fuel_store):
    """Factory storing a fuel charge through the fuel store."""

    async def _add(
        unit_id: int,
        amount: str,
        sale_number: str | None,
        status: PaymentStatus = PaymentStatus.UNPAID,
        when: datetime = datetime(2024, 1, 9, 15, 0),
        tenant_id: str = TENANT,
    ):
        return await fuel_store.create_fuel_record(
            tenant_id,
            NewFuelRecord(
                unit_id=unit_id,
                liters=Decimal("40"),
                amount=Decimal(amount),
                fuel_type=FuelType.DIESEL,
                payment_status=status,
                sale_number=sale_number,
                record_date=when,
            ),
            "2",
        )

    return _add


def _admin_state(sessions) -> ConversationState:
    return sessions.get_state(session_key(ADMIN_ID))


async def _search(dispatcher, sale_number: str):
    await dispatcher.dispatch(action_event(callbacks.PAY_SEARCH, user_id=ADMIN_ID))
    await dispatcher.dispatch(text_event(sale_number, user_id=ADMIN_ID))


class TestPaymentStore:
    """Tests for the payment operations of SqlFuelStore."""

    async def test_pending_balance_counts_active_unpaid_only(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        other = await add_unit("Eve", "9", tenant_id="globex")
        await add_charge(unit.id, "900.50", "A-1")
        await add_charge(unit.id, "100.25", "A-2")
        await add_charge(unit.id, "500", "A-3", status=PaymentStatus.PAID)
        await add_charge(other.id, "700", "G-1", tenant_id="globex")

        balance = await fuel_store.pending_balance(TENANT)

        assert balance.total == Decimal("1000.75")
        assert balance.count == 2

    async def test_pending_balance_empty(self, fuel_store):
        balance = await fuel_store.pending_balance(TENANT)

        assert balance.total == Decimal("0.00")
        assert balance.count == 0

    async def test_paid_on_creation_has_payment_date(self, add_unit, add_charge):
        unit = await add_unit("Ana", "7")

        paid = await add_charge(unit.id, "10", "A-1", status=PaymentStatus.PAID)
        unpaid = await add_charge(unit.id, "10", "A-2")

        assert paid.payment_date is not None
        assert unpaid.payment_date is None

    async def test_mark_paid(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1")

        paid = await fuel_store.mark_paid(TENANT, charge.id)

        assert paid.payment_status == PaymentStatus.PAID
        assert paid.payment_date is not None
        assert paid.unit.unit_number == "7"
        assert (await fuel_store.pending_balance(TENANT)).count == 0

    async def test_mark_paid_twice(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1")
        await fuel_store.mark_paid(TENANT, charge.id)

        with pytest.raises(FuelRecordAlreadyPaid):
            await fuel_store.mark_paid(TENANT, charge.id)

    async def test_mark_paid_other_tenant(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Eve", "9", tenant_id="globex")
        charge = await add_charge(unit.id, "900", "G-1", tenant_id="globex")

        with pytest.raises(EntryNotFound):
            await fuel_store.mark_paid(TENANT, charge.id)

    async def test_list_unpaid_oldest_first(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        newer = await add_charge(unit.id, "10", "A-2", when=datetime(2024, 1, 9, 18))
        older = await add_charge(unit.id, "10", "A-1", when=datetime(2024, 1, 8, 9))

        unpaid = await fuel_store.list_unpaid(TENANT)

        assert [f.id for f in unpaid] == [older.id, newer.id]
        assert unpaid[0].unit.operator_name == "Ana"


class TestBalanceCommand:
    """Tests for /balance."""

    async def test_nothing_pending(self, dispatcher, channel):
        await dispatcher.dispatch(command_event("/balance"))

        assert channel.last.text == "✅ No pending fuel payments."

    async def test_lists_unpaid_charges(self, dispatcher, channel, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        await add_charge(unit.id, "900.50", "A-1")
        await add_charge(unit.id, "99.50", None)

        await dispatcher.dispatch(command_event("/balance"))

        text = channel.last.text
        assert "Pending balance: $1000.00" in text
        assert "Unpaid charges: 2" in text
        assert "• 2024-01-09 · 7 · A-1: $900.50" in text
        assert "no sale number: $99.50" in text
        assert channel.last.button_data == [callbacks.PAY_SEARCH]

    async def test_long_list_is_truncated(self, dispatcher, channel, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        for index in range(12):
            await add_charge(unit.id, "10", f"A-{index}")

        await dispatcher.dispatch(command_event("/balance"))

        assert "… and 2 more" in channel.last.text


class TestMarkPaid:
    """Tests for the sale-number search and confirmation."""

    async def test_search_and_confirm(self, dispatcher, channel, sessions, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1")

        await _search(dispatcher, "A-1")

        assert "Sale number: A-1" in channel.last.text
        assert "Unit: 7 (Ana)" in channel.last.text
        assert "Amount: $900.00" in channel.last.text
        assert channel.last.button_data == [encode_action(callbacks.PAY_CONFIRM, charge.id), callbacks.PAY_CANCEL]
        assert _admin_state(sessions) == ConversationState.PAY_AWAITING_CONFIRM

        await dispatcher.dispatch(action_event(channel.last.button_data[0], user_id=ADMIN_ID))

        assert channel.last.text.startswith("✅ Sale A-1 marked as paid.")
        assert _admin_state(sessions) == ConversationState.IDLE
        assert (await fuel_store.pending_balance(TENANT)).count == 0

    async def test_unknown_sale_number_asks_again(self, dispatcher, channel, sessions, add_unit):
        await add_unit("Ana", "7")

        await _search(dispatcher, "Z-9")

        assert "No charge found with sale number Z-9" in channel.last.text
        assert _admin_state(sessions) == ConversationState.PAY_AWAITING_SALE_NUMBER

    async def test_invalid_sale_number(self, dispatcher, channel, sessions):
        await _search(dispatcher, "TOO-LONG-NUMBER")

        assert "1 to 10 letters" in channel.last.text
        assert _admin_state(sessions) == ConversationState.PAY_AWAITING_SALE_NUMBER

    async def test_already_paid(self, dispatcher, channel, sessions, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        await add_charge(unit.id, "900", "A-1", status=PaymentStatus.PAID)

        await _search(dispatcher, "A-1")

        assert channel.last.text.startswith("⚠️ Sale A-1 is already paid.")
        assert "Payment date: " in channel.last.text
        assert channel.last.button_data == [callbacks.PAY_SEARCH]
        assert _admin_state(sessions) == ConversationState.IDLE

    async def test_stale_confirm_button(self, dispatcher, channel, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1")
        await fuel_store.mark_paid(TENANT, charge.id)

        await dispatcher.dispatch(action_event(encode_action(callbacks.PAY_CONFIRM, charge.id), user_id=ADMIN_ID))

        assert channel.last.text == "That charge was already paid."

    async def test_cancel_keeps_charge_unpaid(self, dispatcher, channel, sessions, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        await add_charge(unit.id, "900", "A-1")
        await _search(dispatcher, "A-1")

        await dispatcher.dispatch(action_event(callbacks.PAY_CANCEL, user_id=ADMIN_ID))

        assert channel.last.text == "Payment cancelled. Sale A-1 is still unpaid."
        assert _admin_state(sessions) == ConversationState.IDLE
        assert (await fuel_store.pending_balance(TENANT)).count == 1

    async def test_text_while_confirming(self, dispatcher, channel, sessions, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        await add_charge(unit.id, "900", "A-1")
        await _search(dispatcher, "A-1")

        await dispatcher.dispatch(text_event("yes", user_id=ADMIN_ID))

        assert channel.last.text == "Please use the buttons above, or /cancel to stop."
        assert _admin_state(sessions) == ConversationState.PAY_AWAITING_CONFIRM

    async def test_driver_cannot_mark_paid(self, dispatcher, channel, sessions, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1")

        await dispatcher.dispatch(action_event(callbacks.PAY_SEARCH))
        assert channel.last.text == "This action is only available to administrators."
        assert sessions.get_state(session_key()) == ConversationState.IDLE

        await dispatcher.dispatch(action_event(encode_action(callbacks.PAY_CONFIRM, charge.id)))
        assert channel.last.text == "This action is only available to administrators."
        assert (await fuel_store.pending_balance(TENANT)).count == 1


class TestDisplayTimezone:
    """Dates are shown on the fleet's clock."""

    async def test_details_in_fleet_timezone(self, fuel_store, add_unit, add_charge):
        unit = await add_unit("Ana", "7")
        charge = await add_charge(unit.id, "900", "A-1", when=datetime(2024, 1, 11, 1, 30))
        fuel = await fuel_store.find_by_sale_number(TENANT, "A-1")

        flow = FuelPaymentFlow(fuel_store, timezone="America/Mexico_City")

        assert fuel.id == charge.id
        assert "Date: 2024-01-10 19:30" in flow.details(fuel)
