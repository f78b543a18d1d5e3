"""Shift menu command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult
from fleetlog.flows.shifts import menu_buttons

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


class ShiftsCommand(CommandHandler):
    """Show the shift menu."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="shifts",
            description="Start or end of day kilometers, today's entries, statistics",
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        return CommandResult(
            response="🕐 Shift management\n\nSelect an action:",
            buttons=menu_buttons(),
        )
