"""Kilometer management command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


class KilometersCommand(CommandHandler):
    """List recent kilometer entries for correction or omission."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="kilometers",
            description="Edit or omit recent kilometer entries",
            admin_only=True,
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        if context.flows is None:
            return CommandResult(response="Kilometer management is not available.")
        await context.flows.admin.list_recent(context.flow)
        return CommandResult()
