"""Slash-command system."""

from fleetlog.channels.commands.base import (
    CommandContext,
    CommandDefinition,
    CommandHandler,
    CommandResult,
)
from fleetlog.channels.commands.router import CommandRouter

__all__ = [
    "CommandContext",
    "CommandDefinition",
    "CommandHandler",
    "CommandResult",
    "CommandRouter",
]
