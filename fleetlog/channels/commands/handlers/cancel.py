"""Cancel command handler."""

import logging
from typing import TYPE_CHECKING

from fleetlog.channels.commands.base import CommandDefinition, CommandHandler, CommandResult
from fleetlog.model.session import ConversationState

if TYPE_CHECKING:
    from fleetlog.channels.base import InboundEvent
    from fleetlog.channels.commands.base import CommandContext

logger = logging.getLogger(__name__)


class CancelCommand(CommandHandler):
    """Abandon whatever flow is in progress."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="cancel",
            description="Cancel the current operation",
        )

    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: "CommandContext",
    ) -> CommandResult:
        flow = context.flow
        if flow.session.is_idle:
            return CommandResult(response="Nothing to cancel.")

        if flow.state == ConversationState.BATCH_CAPTURING_KM and context.flows is not None:
            await context.flows.shifts.cancel(flow, [])
            return CommandResult()

        logger.info(f"{flow.session_key} cancelled {flow.state}")
        flow.reset()
        return CommandResult(response="Operation cancelled.")
