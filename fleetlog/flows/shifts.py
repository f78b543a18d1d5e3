"""Shift menu and the sequential shift-start / shift-end batch.

A batch walks every active unit that has no reading yet for the day and
log type, one unit at a time, in the order the units were listed when the
batch started. For each unit the operator enters a reading, omits the
unit, or cancels the whole batch. The BatchJob lives in the session data
bag under ``"job"``; it is mutated in place, so prompting the next unit
only changes the state label.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum

from fleetlog import callbacks
from fleetlog.callbacks import encode_action
from fleetlog.channels.base import Button
from fleetlog.core.timezone import fleet_today
from fleetlog.db.models import LogType
from fleetlog.errors import DuplicateActiveEntry
from fleetlog.kilometers.store import KilometerStore
from fleetlog.kilometers.validator import KilometerValidator, describe_last_known, format_km
from fleetlog.model.batch import BatchJob, UnitRef
from fleetlog.model.kilometers import KilometerValidation, ValidationCode
from fleetlog.model.session import ConversationState
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

LOG_TYPE_LABELS = {
    LogType.SHIFT_START: "Shift start",
    LogType.SHIFT_END: "Shift end",
}
LOG_TYPE_EMOJI = {
    LogType.SHIFT_START: "🌅",
    LogType.SHIFT_END: "🌆",
}


class BatchStartStatus(StrEnum):
    STARTED = "started"
    ALREADY_COMPLETE = "already_complete"
    NO_UNITS = "no_units"


@dataclass
class BatchStart:
    """Outcome of planning a batch.

    ``job`` is set only when the status is STARTED.
    """

    status: BatchStartStatus
    log_type: LogType
    log_date: date
    total_units: int = 0
    already_logged: int = 0
    job: BatchJob | None = None


def menu_buttons() -> list[list[Button]]:
    """Buttons of the shift menu."""
    return [
        [Button("🌅 Start of day", encode_action(callbacks.SHIFT_START))],
        [Button("🌆 End of day", encode_action(callbacks.SHIFT_END))],
        [Button("📋 Today's entries", encode_action(callbacks.SHIFT_TODAY))],
        [Button("📊 Recent statistics", encode_action(callbacks.SHIFT_STATS))],
    ]


def build_summary(job: BatchJob, cancelled: bool = False) -> str:
    """Text reported when a batch finishes or is cancelled."""
    label = LOG_TYPE_LABELS[job.log_type]
    if cancelled:
        lines = [
            "❌ Process cancelled",
            "",
            "📊 Progress:",
            f"• Processed units: {len(job.processed)}",
            f"• Omitted units: {len(job.omitted)}",
            f"• Remaining units: {job.remaining}",
        ]
    else:
        lines = [
            f"{LOG_TYPE_EMOJI[job.log_type]} {label} completed - {job.log_date:%Y-%m-%d}",
            "",
            "📊 Summary:",
            f"• Processed: {len(job.processed)}",
            f"• Omitted: {len(job.omitted)}",
            f"• Total: {job.total}",
        ]

    if job.processed:
        lines += ["", "✅ Processed units:"]
        for item in job.processed:
            value = "already logged" if item.already_logged else f"{format_km(item.kilometers)} km"
            lines.append(f"• {item.unit.label}: {value}")

    if job.omitted:
        lines += ["", "⏭️ Omitted units:"]
        for omitted in job.omitted:
            suffix = f" (error: {omitted.error})" if omitted.error else ""
            lines.append(f"• {omitted.unit.label}{suffix}")

    if cancelled:
        lines += ["", "Entries already saved are kept. You can restart the process at any time."]
    return "\n".join(lines)


class ShiftBatchWorkflow:
    """Shift menu actions and the batch collection of odometer readings."""

    def __init__(
        self,
        store: KilometerStore,
        validator: KilometerValidator,
        today: Callable[[], date] = fleet_today,
        stats_window_days: int = 7,
    ):
        self.store = store
        self.validator = validator
        self.today = today
        self.stats_window_days = stats_window_days

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.register_state(ConversationState.BATCH_CAPTURING_KM, self.handle_kilometers)
        dispatcher.register_action(callbacks.SHIFT_START, self._on_shift_start)
        dispatcher.register_action(callbacks.SHIFT_END, self._on_shift_end)
        dispatcher.register_action(callbacks.SHIFT_TODAY, self.show_today)
        dispatcher.register_action(callbacks.SHIFT_STATS, self.show_stats)
        dispatcher.register_action(callbacks.BATCH_OMIT, self.omit_current_unit)
        dispatcher.register_action(callbacks.BATCH_CANCEL, self.cancel)

    async def plan_batch(self, tenant_id: str, log_type: LogType, log_date: date) -> BatchStart:
        """Compute the pending queue: active units minus units already logged."""
        units = await self.store.list_active_units(tenant_id)
        if not units:
            return BatchStart(BatchStartStatus.NO_UNITS, log_type, log_date)

        entries = await self.store.list_entries_for_date(tenant_id, log_date, log_type)
        logged_ids = {entry.unit_id for entry in entries}
        pending = [UnitRef.from_unit(unit) for unit in units if unit.id not in logged_ids]

        if not pending:
            return BatchStart(
                BatchStartStatus.ALREADY_COMPLETE,
                log_type,
                log_date,
                total_units=len(units),
                already_logged=len(entries),
            )

        return BatchStart(
            BatchStartStatus.STARTED,
            log_type,
            log_date,
            total_units=len(units),
            already_logged=len(entries),
            job=BatchJob(log_type=log_type, log_date=log_date, pending=pending),
        )

    async def start_batch(self, ctx: FlowContext, log_type: LogType, log_date: date | None = None) -> BatchStart:
        """Plan a batch and, when there is work to do, prompt the first unit."""
        log_date = log_date or self.today()
        plan = await self.plan_batch(ctx.tenant_id, log_type, log_date)
        label = LOG_TYPE_LABELS[log_type]

        if plan.status == BatchStartStatus.NO_UNITS:
            await ctx.reply("There are no units registered to process.")
            return plan

        if plan.status == BatchStartStatus.ALREADY_COMPLETE:
            await ctx.reply(
                f"✅ Every unit already has a {label.lower()} entry for today.\n\n"
                f"📊 Entries completed: {plan.already_logged}\n"
                f"📅 Date: {log_date:%Y-%m-%d}"
            )
            return plan

        job = plan.job
        assert job is not None
        logger.info(
            f"Starting {log_type} batch for tenant {ctx.tenant_id} on {log_date}: "
            f"{job.total} pending of {plan.total_units}"
        )
        await ctx.reply(
            f"{LOG_TYPE_EMOJI[log_type]} {label} - {log_date:%Y-%m-%d}\n\n"
            "📊 Overview:\n"
            f"• Total units: {plan.total_units}\n"
            f"• Already logged: {plan.already_logged}\n"
            f"• Pending: {job.total}\n\n"
            "Starting sequential capture..."
        )
        ctx.transition(ConversationState.BATCH_CAPTURING_KM, {"job": job})
        await self.prompt_current_unit(ctx, job)
        return plan

    async def prompt_current_unit(self, ctx: FlowContext, job: BatchJob) -> None:
        """Ask for the current unit's reading, or summarize when the queue is empty."""
        if job.is_finished:
            await self._finish(ctx, job)
            return

        unit = job.current_unit
        try:
            last_known = await self.store.find_last_known_kilometer(ctx.tenant_id, unit.id)
        except Exception as e:
            logger.error(f"Could not load last known kilometer for unit {unit.id}: {e}", exc_info=True)
            history = "📊 Last reading unavailable"
        else:
            if last_known is None:
                history = "✨ First kilometer record for this unit"
            else:
                history = f"📊 Last reading: {describe_last_known(last_known)}"

        ctx.transition(ConversationState.BATCH_CAPTURING_KM)
        await ctx.reply(
            f"{LOG_TYPE_EMOJI[job.log_type]} {LOG_TYPE_LABELS[job.log_type]} entry\n\n"
            f"👤 Operator: {unit.operator_name}\n"
            f"🚛 Unit: {unit.unit_number}\n"
            f"📅 Date: {job.log_date:%Y-%m-%d}\n"
            f"{history}\n\n"
            f"⏳ Unit {job.current_index + 1} of {job.total}, {job.remaining} remaining\n\n"
            "Please enter the current kilometers:",
            buttons=[
                [Button("⏭️ Omit this unit", encode_action(callbacks.BATCH_OMIT))],
                [Button("❌ Cancel process", encode_action(callbacks.BATCH_CANCEL))],
            ],
        )

    async def handle_kilometers(self, ctx: FlowContext) -> bool | None:
        """Validate and store the reading typed for the current unit."""
        job = self._job(ctx)
        if job is None or job.is_finished:
            logger.warning(f"{ctx.session_key} is capturing kilometers without a batch job")
            ctx.reset()
            await ctx.reply("No shift process in progress. Use /shifts to start one.")
            return None

        unit = job.current_unit
        validation = await self.validator.validate_new_reading(ctx.tenant_id, unit.id, ctx.event.text)
        if not validation.is_valid:
            await ctx.reply(self._rejection_message(validation))
            return None

        kilometers = validation.kilometers
        assert kilometers is not None
        if validation.warning == ValidationCode.HIGH_INCREMENT:
            await ctx.reply(f"⚠️ {validation.message}\n\nContinuing with the entry...")

        try:
            entry = await self.store.create_log_entry(
                ctx.tenant_id, unit.id, kilometers, job.log_type, job.log_date, ctx.user_id
            )
        except DuplicateActiveEntry:
            logger.info(f"Unit {unit.id} already has a {job.log_type} entry for {job.log_date}, counting as done")
            job.record_already_logged()
            await ctx.reply(
                f"⚠️ {unit.label} already has a {LOG_TYPE_LABELS[job.log_type].lower()} entry for today. "
                "Continuing..."
            )
        except Exception as e:
            logger.error(f"Failed to save reading for unit {unit.id}: {e}", exc_info=True)
            job.record_omitted(error=str(e))
            await ctx.reply(f"❗ Could not save the reading for {unit.label}. The unit was skipped.")
        else:
            job.record_processed(kilometers, entry.id)
            await ctx.reply(f"✅ Saved: {unit.label}\n📊 Kilometers: {format_km(kilometers)}")

        await self.prompt_current_unit(ctx, job)
        return None

    async def omit_current_unit(self, ctx: FlowContext, params: list[str]) -> bool | None:
        job = self._job(ctx)
        if job is None or job.is_finished:
            await ctx.reply("No shift process in progress.")
            return None

        omitted = job.record_omitted()
        logger.info(f"Omitted unit {omitted.unit.id} in {job.log_type} batch")
        await ctx.reply(f"⏭️ Omitted: {omitted.unit.label}")
        await self.prompt_current_unit(ctx, job)
        return None

    async def cancel(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """Abandon the remaining queue; saved entries stay."""
        job = self._job(ctx)
        if job is None:
            await ctx.reply("No shift process in progress.")
            return None

        logger.info(
            f"Batch {job.log_type} cancelled by {ctx.user_id}: {len(job.processed)} processed, "
            f"{len(job.omitted)} omitted, {job.remaining} remaining"
        )
        ctx.reset()
        await ctx.reply(build_summary(job, cancelled=True))
        return None

    async def show_today(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """List today's non-omitted shift entries."""
        today = self.today()
        entries = await self.store.list_entries_for_date(ctx.tenant_id, today)
        if not entries:
            await ctx.reply(f"📋 No shift entries for {today:%Y-%m-%d} yet.")
            return None

        lines = [f"📋 Shift entries - {today:%Y-%m-%d}"]
        for log_type in (LogType.SHIFT_START, LogType.SHIFT_END):
            of_type = [entry for entry in entries if entry.log_type == log_type]
            lines += ["", f"{LOG_TYPE_EMOJI[log_type]} {LOG_TYPE_LABELS[log_type]} ({len(of_type)}):"]
            if not of_type:
                lines.append("• none")
            for entry in of_type:
                lines.append(
                    f"• {entry.unit.operator_name} - {entry.unit.unit_number}: {format_km(entry.kilometers)} km"
                )
        await ctx.reply("\n".join(lines))
        return None

    async def show_stats(self, ctx: FlowContext, params: list[str]) -> bool | None:
        """Per-unit statistics over the configured window, ending today."""
        end = self.today()
        start = end - timedelta(days=self.stats_window_days - 1)
        stats = await self.store.kilometer_stats(ctx.tenant_id, start, end)
        if not stats:
            await ctx.reply(f"📊 No shift entries between {start:%Y-%m-%d} and {end:%Y-%m-%d}.")
            return None

        lines = [f"📊 Statistics {start:%Y-%m-%d} to {end:%Y-%m-%d}"]
        for unit_stats in stats:
            lines += [
                "",
                f"🚛 {unit_stats.operator_name} - {unit_stats.unit_number}",
                f"• Entries: {unit_stats.total_logs} "
                f"({unit_stats.shift_start_logs} start, {unit_stats.shift_end_logs} end)",
                f"• Distance: {format_km(unit_stats.total_distance)} km",
            ]
        await ctx.reply("\n".join(lines))
        return None

    async def _on_shift_start(self, ctx: FlowContext, params: list[str]) -> bool | None:
        await self.start_batch(ctx, LogType.SHIFT_START)
        return None

    async def _on_shift_end(self, ctx: FlowContext, params: list[str]) -> bool | None:
        await self.start_batch(ctx, LogType.SHIFT_END)
        return None

    async def _finish(self, ctx: FlowContext, job: BatchJob) -> None:
        logger.info(
            f"Batch {job.log_type} for {job.log_date} finished: "
            f"{len(job.processed)} processed, {len(job.omitted)} omitted of {job.total}"
        )
        ctx.reset()
        await ctx.reply(build_summary(job))

    @staticmethod
    def _job(ctx: FlowContext) -> BatchJob | None:
        if ctx.state != ConversationState.BATCH_CAPTURING_KM:
            return None
        job = ctx.data.get("job")
        return job if isinstance(job, BatchJob) else None

    @staticmethod
    def _rejection_message(validation: KilometerValidation) -> str:
        message = f"❌ {validation.message}"
        if validation.error == ValidationCode.KILOMETER_BELOW_LAST and validation.last_known is not None:
            message += (
                f"\n\n📊 Last reading: {describe_last_known(validation.last_known)}"
                "\n\nPlease enter a value greater than or equal to the last reading."
            )
        return message
