"""Pending fuel balance command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


class BalanceCommand(CommandHandler):
    """Show the unpaid fuel balance of the company."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="balance",
            description="Show unpaid fuel charges",
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        if context.flows is None:
            return CommandResult(response="Fuel payments are not available.")
        await context.flows.payments.show_balance(context.flow)
        return CommandResult()
