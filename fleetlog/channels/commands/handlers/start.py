"""Start command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult
from fleetlog.channels.commands.handlers.help import render_help

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


class StartCommand(CommandHandler):
    """Greet the user with the tenant name and the command list."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="start",
            description="Initialize the bot",
            hidden=True,
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        tenant = context.flow.tenant
        greeting = f"🚛 FleetLog ready for {tenant.name or tenant.id}."
        return CommandResult(response=f"{greeting}\n\n{render_help(context)}")
