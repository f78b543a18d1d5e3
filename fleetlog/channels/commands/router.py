"""Command routing system."""

import logging
from typing import TYPE_CHECKING

from fleetlog.channels.base import EventKind
from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext

logger = logging.getLogger(__name__)


class CommandRouter:
    """Routes commands to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}

    def register(self, handler: CommandHandler) -> None:
        """Register a command handler.

        Args:
            handler: Command handler to register.
        """
        self._handlers[handler.definition.name] = handler

    def get_handler(self, command_name: str) -> CommandHandler | None:
        return self._handlers.get(command_name)

    def list_commands(self, include_hidden: bool = False) -> list[CommandDefinition]:
        """List all registered commands.

        Args:
            include_hidden: Whether to include hidden commands.

        Returns:
            List of command definitions.
        """
        return [
            h.definition
            for h in self._handlers.values()
            if include_hidden or not h.definition.hidden
        ]

    async def route(
        self, event: "InboundEvent", context: "CommandContext"
    ) -> CommandResult | None:
        """Route a command event to its handler.

        Returns:
            CommandResult if handled, None if not a command or unknown command.
        """
        if event.kind != EventKind.COMMAND:
            return None

        command_name, args = event.parse_command()
        handler = self.get_handler(command_name)
        if handler is None:
            return None

        if handler.definition.admin_only and not context.flow.tenant.is_admin(event.user_id):
            logger.info(f"User {event.user_id} denied admin command /{command_name}")
            return CommandResult(response="This command is only available to administrators.")

        return await handler.handle(event, args, context)
