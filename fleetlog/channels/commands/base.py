"""Base abstractions for the command system."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fleetlog.channels.base import Button, InboundEvent
    from fleetlog.flows import Flows
    from fleetlog.runtime.context import FlowContext


@dataclass
class CommandDefinition:
    """Metadata for a registered command."""

    name: str  # e.g., "shifts", "fuel"
    description: str  # Short description for /help
    hidden: bool = False  # If True, omit from /help
    admin_only: bool = False  # If True, only tenant admins may run it


@dataclass
class CommandContext:
    """Runtime context passed to command handlers."""

    flow: "FlowContext"
    flows: "Flows | None" = None
    command_router: Any = None  # CommandRouter, avoid circular import


@dataclass
class CommandResult:
    """Result from a command handler."""

    response: str | None = None  # Text to send back to user
    buttons: "list[list[Button]] | None" = None  # Inline buttons under the response
    handled: bool = True  # If False, continue down the dispatch chain


class CommandHandler(ABC):
    """Base class for command implementations."""

    @property
    @abstractmethod
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        ...

    @abstractmethod
    async def handle(
        self,
        event: "InboundEvent",
        args: str,
        context: CommandContext,
    ) -> CommandResult:
        """Execute the command."""
        ...
