"""Fuel charge command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


class FuelCommand(CommandHandler):
    """Start the fuel charge form."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="fuel",
            description="Register a fuel charge",
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        if context.flows is None:
            return CommandResult(response="Fuel charges are not available.")
        await context.flows.fuel.start(context.flow)
        return CommandResult()
