"""Command handlers for FleetLog."""

from fleetlog.channels.commands.base import CommandHandler
from fleetlog.channels.commands.handlers.balance import BalanceCommand
from fleetlog.channels.commands.handlers.cancel import CancelCommand
from fleetlog.channels.commands.handlers.fuel import FuelCommand
from fleetlog.channels.commands.handlers.help import HelpCommand
from fleetlog.channels.commands.handlers.kilometers import KilometersCommand
from fleetlog.channels.commands.handlers.shifts import ShiftsCommand
from fleetlog.channels.commands.handlers.start import StartCommand


def get_commands() -> list[CommandHandler]:
    """Return all command handlers for registration.

    Returns:
        List of command handler instances.
    """
    return [
        StartCommand(),
        HelpCommand(),
        ShiftsCommand(),
        FuelCommand(),
        BalanceCommand(),
        KilometersCommand(),
        CancelCommand(),
    ]


__all__ = [
    "BalanceCommand",
    "CancelCommand",
    "FuelCommand",
    "get_commands",
    "HelpCommand",
    "KilometersCommand",
    "ShiftsCommand",
    "StartCommand",
]
