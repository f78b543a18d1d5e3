"""Administrative correction and omission of kilometer entries.

Corrections go through ``KilometerValidator.check_edit``: inconsistencies
with neighboring entries are shown as warnings and the administrator may
force the update. Omission is a soft delete; the unit is queued again by
the next batch and the same row is reactivated.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from fleetlog import callbacks
from fleetlog.callbacks import encode_action
from fleetlog.channels.base import Button
from fleetlog.db.models import KilometerLog, LogType
from fleetlog.errors import EntryNotFound
from fleetlog.kilometers.store import KilometerStore
from fleetlog.kilometers.validator import KilometerValidator, format_km
from fleetlog.model.kilometers import EditCheck
from fleetlog.model.session import ConversationState
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10

_SHORT_TYPE = {
    LogType.SHIFT_START: "start",
    LogType.SHIFT_END: "end",
}
_ADMIN_STATES = (ConversationState.KM_EDITING_VALUE, ConversationState.KM_AWAITING_FORCE)


@dataclass
class EditTarget:
    """Entry being corrected and the last value proposed for it."""

    entry_id: int
    label: str
    current: Decimal
    proposed: Decimal | None = None


def describe_entry(entry: KilometerLog) -> str:
    return (
        f"{entry.log_date:%Y-%m-%d} {_SHORT_TYPE[entry.log_type]} · "
        f"{entry.unit.unit_number}: {format_km(entry.kilometers)} km"
    )


class KilometerAdminFlow:
    """List, edit, force-update and omit kilometer entries."""

    def __init__(self, store: KilometerStore, validator: KilometerValidator):
        self.store = store
        self.validator = validator

    def register(self, dispatcher: Dispatcher) -> None:
        for state in _ADMIN_STATES:
            dispatcher.register_state(state, self.handle_value)
        dispatcher.register_action(callbacks.KM_MANAGE, self.manage)
        dispatcher.register_action(callbacks.KM_EDIT, self.edit)
        dispatcher.register_action(callbacks.KM_FORCE, self.force)
        dispatcher.register_action(callbacks.KM_OMIT, self.omit)
        dispatcher.register_action(callbacks.KM_OMIT_CONFIRM, self.confirm_omit)
        dispatcher.register_action(callbacks.MENU_CANCEL, self.cancel)

    async def list_recent(self, ctx: FlowContext) -> None:
        """Show the latest entries, each with a manage button."""
        entries = await self.store.list_recent_entries(ctx.tenant_id, RECENT_LIMIT)
        if not entries:
            await ctx.reply("No kilometer entries found.")
            return

        buttons = [
            [Button(describe_entry(entry), encode_action(callbacks.KM_MANAGE, entry.id))]
            for entry in entries
        ]
        buttons.append([Button("❌ Close", encode_action(callbacks.MENU_CANCEL))])
        await ctx.reply(f"🛠️ Last {len(entries)} kilometer entries. Select one to manage:", buttons=buttons)

    async def manage(self, ctx: FlowContext, params: list[str]) -> bool | None:
        entry = await self._load(ctx, params)
        if entry is None:
            return None

        await ctx.reply(
            "📝 Kilometer entry\n\n"
            f"👤 Operator: {entry.unit.operator_name}\n"
            f"🚛 Unit: {entry.unit.unit_number}\n"
            f"📅 Date: {entry.log_date:%Y-%m-%d}\n"
            f"🔖 Type: {entry.log_type}\n"
            f"📊 Kilometers: {format_km(entry.kilometers)}",
            buttons=[
                [
                    Button("✏️ Edit", encode_action(callbacks.KM_EDIT, entry.id)),
                    Button("🗑️ Omit", encode_action(callbacks.KM_OMIT, entry.id)),
                ],
                [Button("❌ Cancel", encode_action(callbacks.MENU_CANCEL))],
            ],
        )
        return None

    async def edit(self, ctx: FlowContext, params: list[str]) -> bool | None:
        entry = await self._load(ctx, params)
        if entry is None:
            return None

        target = EditTarget(
            entry_id=entry.id,
            label=f"{entry.unit.operator_name} - {entry.unit.unit_number}",
            current=entry.kilometers,
        )
        ctx.transition(ConversationState.KM_EDITING_VALUE, {"edit": target})
        await ctx.reply(
            f"✏️ {target.label}, {entry.log_type} on {entry.log_date:%Y-%m-%d}\n"
            f"Current value: {format_km(entry.kilometers)} km\n\n"
            "Enter the new kilometers:",
            buttons=[[Button("❌ Cancel", encode_action(callbacks.MENU_CANCEL))]],
        )
        return None

    async def handle_value(self, ctx: FlowContext) -> bool | None:
        """Check a typed correction; also re-checks while a force is pending."""
        target = ctx.data.get("edit")
        if not isinstance(target, EditTarget):
            ctx.reset()
            await ctx.reply("No edit in progress. Use /kilometers to start again.")
            return None

        result = self.validator.check_format(ctx.event.text)
        if not result.is_valid:
            await ctx.reply(f"❌ {result.message}")
            return None
        kilometers = result.kilometers
        assert kilometers is not None

        try:
            entry = await self.store.get_entry(ctx.tenant_id, target.entry_id)
        except EntryNotFound:
            ctx.reset()
            await ctx.reply("That entry no longer exists.")
            return None
        if entry.is_omitted:
            ctx.reset()
            await ctx.reply("That entry was omitted.")
            return None

        check = await self.validator.check_edit(entry, kilometers)
        if check.is_consistent:
            await self._apply(ctx, target.entry_id, target.current, kilometers, forced=False)
            return None

        target.proposed = kilometers
        ctx.transition(ConversationState.KM_AWAITING_FORCE)
        await ctx.reply(
            self.warning_message(check),
            buttons=[
                [Button("⚠️ Force update", encode_action(callbacks.KM_FORCE, entry.id, kilometers))],
                [Button("❌ Cancel", encode_action(callbacks.MENU_CANCEL))],
            ],
        )
        return None

    async def force(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """Apply a value despite the warnings shown for it."""
        if len(params) != 2:
            return False
        if not await self._require_admin(ctx):
            return None

        result = self.validator.check_format(params[1])
        if not params[0].isdigit() or not result.is_valid or result.kilometers is None:
            return False

        try:
            entry = await self.store.get_entry(ctx.tenant_id, int(params[0]))
        except EntryNotFound:
            await ctx.reply("That entry no longer exists.")
            return None
        if entry.is_omitted:
            if ctx.state in _ADMIN_STATES:
                ctx.reset()
            await ctx.reply("That entry was omitted.")
            return None

        await self._apply(ctx, entry.id, entry.kilometers, result.kilometers, forced=True)
        return None

    async def omit(self, ctx: FlowContext, params: list[str]) -> bool | None:
        entry = await self._load(ctx, params)
        if entry is None:
            return None

        await ctx.reply(
            f"🗑️ Omit this entry?\n\n{describe_entry(entry)}\n\n"
            "It will stop counting for the day and the unit will be asked again in the next shift process.",
            buttons=[[
                Button("✅ Yes, omit", encode_action(callbacks.KM_OMIT_CONFIRM, entry.id)),
                Button("❌ Cancel", encode_action(callbacks.MENU_CANCEL)),
            ]],
        )
        return None

    async def confirm_omit(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if not params or not params[0].isdigit():
            return False
        if not await self._require_admin(ctx):
            return None

        try:
            entry = await self.store.omit_log_entry(ctx.tenant_id, int(params[0]))
        except EntryNotFound:
            await ctx.reply("That entry no longer exists.")
            return None

        logger.info(f"Entry {entry.id} omitted by {ctx.user_id}")
        await ctx.reply(f"✅ Entry omitted: {describe_entry(entry)}")
        return None

    async def cancel(self, ctx: FlowContext, params: list[str]) -> bool | None:
        if ctx.state not in _ADMIN_STATES:
            await ctx.reply_nothing_to_cancel("Closed.")
            return None
        ctx.reset()
        await ctx.reply("Operation cancelled.")
        return None

    @staticmethod
    def warning_message(check: EditCheck) -> str:
        lines = [f"⚠️ {format_km(check.kilometers)} km is inconsistent with nearby entries:", ""]
        lines += [f"• {warning.message}" for warning in check.warnings]
        lines += ["", "Enter a different value, or force the update."]
        return "\n".join(lines)

    async def _apply(
        self,
        ctx: FlowContext,
        entry_id: int,
        previous: Decimal,
        kilometers: Decimal,
        forced: bool,
    ) -> None:
        await self.store.update_entry_kilometers(ctx.tenant_id, entry_id, kilometers, ctx.user_id)
        if forced:
            logger.warning(f"Entry {entry_id} force-updated to {kilometers} km by {ctx.user_id}")
        if ctx.state in _ADMIN_STATES:
            ctx.reset()
        await ctx.reply(f"✅ Entry updated: {format_km(previous)} → {format_km(kilometers)} km")

    async def _require_admin(self, ctx: FlowContext) -> bool:
        if ctx.tenant.is_admin(ctx.user_id):
            return True
        logger.info(f"User {ctx.user_id} denied kilometer management")
        await ctx.reply("This action is only available to administrators.")
        return False

    async def _load(self, ctx: FlowContext, params: list[str]) -> KilometerLog | None:
        """Admin check plus lookup of the entry named by the callback."""
        if not await self._require_admin(ctx):
            return None
        if not params or not params[0].isdigit():
            await ctx.reply("Invalid entry.")
            return None
        try:
            entry = await self.store.get_entry(ctx.tenant_id, int(params[0]))
        except EntryNotFound:
            await ctx.reply("That entry no longer exists.")
            return None
        if entry.is_omitted:
            await ctx.reply("That entry was omitted.")
            return None
        return entry
