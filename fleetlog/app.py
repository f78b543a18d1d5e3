"""Wires configuration, storage, flows and the chat channel together."""

import logging
from functools import partial

from fleetlog.channels.base import ChannelAdapter
from fleetlog.channels.commands import CommandRouter
from fleetlog.channels.commands.handlers import get_commands
from fleetlog.channels.telegram import TelegramChannel
from fleetlog.core.config import Config
from fleetlog.core.timezone import fleet_today
from fleetlog.db.database import DatabaseManager
from fleetlog.flows import Flows, FuelEntryFlow, FuelPaymentFlow, KilometerAdminFlow, ShiftBatchWorkflow
from fleetlog.fuel.store import SqlFuelStore
from fleetlog.kilometers.store import SqlKilometerStore
from fleetlog.kilometers.validator import KilometerValidator
from fleetlog.runtime.dispatcher import Dispatcher
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import ConfigTenantResolver, TenantResolver

logger = logging.getLogger(__name__)


class FleetLogApp:
    """Owns every long-lived component of a running bot."""

    def __init__(
        self,
        config: Config,
        channel: ChannelAdapter | None = None,
        tenants: TenantResolver | None = None,
    ):
        """Build the component graph.

        Args:
            config: Application configuration.
            channel: Channel adapter; defaults to Telegram from ``config.telegram``.
            tenants: Tenant resolver; defaults to the ``tenants`` config section.
        """
        self.config = config
        self.db = DatabaseManager.from_config(config.database)
        self.kilometer_store = SqlKilometerStore(self.db, timezone=config.timezone)
        self.fuel_store = SqlFuelStore(self.db)
        self.validator = KilometerValidator(
            self.kilometer_store,
            high_increment_threshold=config.kilometers.high_increment_threshold,
            max_decimal_places=config.kilometers.max_decimal_places,
        )

        self.channel = channel or TelegramChannel(
            token=config.telegram.token,
            allowed_users=config.telegram.allowed_users,
            allow_all=config.telegram.allow_all,
        )
        self.tenants = tenants or ConfigTenantResolver(config.tenants)
        self.sessions = SessionManager()

        self.command_router = CommandRouter()
        for handler in get_commands():
            self.command_router.register(handler)

        self.flows = Flows(
            shifts=ShiftBatchWorkflow(
                self.kilometer_store,
                self.validator,
                today=partial(fleet_today, config.timezone),
                stats_window_days=config.kilometers.stats_window_days,
            ),
            fuel=FuelEntryFlow(self.kilometer_store, self.validator, self.fuel_store),
            payments=FuelPaymentFlow(self.fuel_store, timezone=config.timezone),
            admin=KilometerAdminFlow(self.kilometer_store, self.validator),
        )
        self.dispatcher = Dispatcher(
            self.sessions,
            self.channel,
            self.tenants,
            command_router=self.command_router,
            flows=self.flows,
        )
        self.flows.register(self.dispatcher)

    async def start(self) -> None:
        """Create tables if needed and start receiving events."""
        await self.db.init_db()
        self.channel.on_event(self.dispatcher.dispatch)
        await self.channel.start()
        await self.channel.register_commands(self.command_router.list_commands())
        logger.info(f"FleetLog started with database {self.db.db_path}")

    async def stop(self) -> None:
        """Stop the channel, then release database connections.

        Logs errors but does not raise so the database is always closed.
        """
        try:
            await self.channel.stop()
        except Exception as e:
            logger.error(f"Error stopping channel: {e}", exc_info=True)
        await self.db.close()
        logger.info("FleetLog stopped")
