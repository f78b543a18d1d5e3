"""Help command handler."""

from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext


def render_help(context: "CommandContext") -> str:
    """Command list visible to the user of the context."""
    commands = []
    if context.command_router:
        commands = context.command_router.list_commands()

    is_admin = context.flow.tenant.is_admin(context.flow.user_id)
    commands = [cmd for cmd in commands if is_admin or not cmd.admin_only]
    if not commands:
        return "No commands available."

    lines = ["Available commands:\n"]
    for cmd in commands:
        lines.append(f"/{cmd.name} - {cmd.description}")
    return "\n".join(lines)


class HelpCommand(CommandHandler):
    """Display available commands."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="help",
            description="Show available commands",
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        """Execute the help command.

        Args:
            event: Incoming event.
            args: Command arguments (unused).
            context: Command execution context.

        Returns:
            CommandResult with formatted help text.
        """
        return CommandResult(response=render_help(context))
