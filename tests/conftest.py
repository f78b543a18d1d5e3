"""Shared fixtures: temporary database, stores, a recording channel and a wired dispatcher."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from fleetlog.channels.base import Button, ChannelAdapter, EventCallback, EventKind, InboundEvent
from fleetlog.channels.commands import CommandRouter
from fleetlog.channels.commands.handlers import get_commands
from fleetlog.core.config import TenantConfig
from fleetlog.db.database import DatabaseManager
from fleetlog.db.models import FuelRecord, FuelType, PaymentStatus, Unit
from fleetlog.db.repositories import FuelRepository, UnitRepository
from fleetlog.flows import Flows, FuelEntryFlow, FuelPaymentFlow, KilometerAdminFlow, ShiftBatchWorkflow
from fleetlog.fuel.store import SqlFuelStore
from fleetlog.kilometers.store import SqlKilometerStore
from fleetlog.kilometers.validator import KilometerValidator
from fleetlog.runtime.dispatcher import Dispatcher
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import ConfigTenantResolver

TENANT = "acme"
CHAT_ID = -100500
ADMIN_ID = "1"
DRIVER_ID = "2"
TODAY = date(2024, 1, 10)


@dataclass
class SentMessage:
    session_key: str
    text: str
    buttons: list[list[Button]] | None = None

    @property
    def button_data(self) -> list[str]:
        return [button.data for row in self.buttons or [] for button in row]


@dataclass
class RecordingChannel(ChannelAdapter):
    """Channel that keeps every outgoing message in memory."""

    name: str = "telegram"
    sent: list[SentMessage] = field(default_factory=list)

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def send_message(self, session_key, content, buttons=None) -> None:
        self.sent.append(SentMessage(session_key, content, buttons))

    def on_event(self, callback: EventCallback) -> None:
        self.callback = callback

    @property
    def last(self) -> SentMessage:
        return self.sent[-1]

    def texts(self) -> list[str]:
        return [message.text for message in self.sent]


def session_key(user_id: str = DRIVER_ID, chat_id: int = CHAT_ID) -> str:
    return f"telegram:{chat_id}:{user_id}"


def text_event(text: str, user_id: str = DRIVER_ID, chat_id: int = CHAT_ID) -> InboundEvent:
    return InboundEvent(session_key(user_id, chat_id), chat_id, user_id, EventKind.TEXT, text=text)


def command_event(text: str, user_id: str = DRIVER_ID, chat_id: int = CHAT_ID) -> InboundEvent:
    return InboundEvent(session_key(user_id, chat_id), chat_id, user_id, EventKind.COMMAND, text=text)


def action_event(data: str, user_id: str = DRIVER_ID, chat_id: int = CHAT_ID) -> InboundEvent:
    return InboundEvent(session_key(user_id, chat_id), chat_id, user_id, EventKind.ACTION, action_data=data)


@pytest.fixture
async def db_manager(tmp_path: Path):
    """Provide a temporary database manager."""
    manager = DatabaseManager(tmp_path / "test.db")
    await manager.init_db()
    yield manager
    await manager.close()


@pytest.fixture
def kilometer_store(db_manager) -> SqlKilometerStore:
    return SqlKilometerStore(db_manager)


@pytest.fixture
def fuel_store(db_manager) -> SqlFuelStore:
    return SqlFuelStore(db_manager)


@pytest.fixture
def validator(kilometer_store) -> KilometerValidator:
    return KilometerValidator(kilometer_store, high_increment_threshold=Decimal("1000"))


@pytest.fixture
def add_unit(db_manager):
    """Factory creating a unit row."""

    async def _add(operator: str, number: str, tenant_id: str = TENANT, active: bool = True) -> Unit:
        async with db_manager.session() as session:
            return await UnitRepository(session).create(
                Unit(tenant_id=tenant_id, operator_name=operator, unit_number=number, is_active=active)
            )

    return _add


@pytest.fixture
def add_fuel_reading(db_manager):
    """Factory creating a fuel record that carries a kilometer reading."""

    async def _add(unit_id: int, kilometers: str, when: datetime, tenant_id: str = TENANT) -> FuelRecord:
        async with db_manager.session() as session:
            return await FuelRepository(session).create(
                FuelRecord(
                    tenant_id=tenant_id,
                    unit_id=unit_id,
                    kilometers=Decimal(kilometers),
                    liters=Decimal("40"),
                    amount=Decimal("900"),
                    fuel_type=FuelType.DIESEL,
                    payment_status=PaymentStatus.PAID,
                    record_date=when,
                )
            )

    return _add


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def sessions() -> SessionManager:
    return SessionManager()


@pytest.fixture
def flows(kilometer_store, validator, fuel_store) -> Flows:
    return Flows(
        shifts=ShiftBatchWorkflow(kilometer_store, validator, today=lambda: TODAY),
        fuel=FuelEntryFlow(kilometer_store, validator, fuel_store),
        payments=FuelPaymentFlow(fuel_store),
        admin=KilometerAdminFlow(kilometer_store, validator),
    )


@pytest.fixture
def dispatcher(sessions, channel, flows) -> Dispatcher:
    """Dispatcher wired like the application, for tenant 'acme' in CHAT_ID."""
    tenants = ConfigTenantResolver(
        [TenantConfig(id=TENANT, name="ACME", chat_ids=[CHAT_ID], admin_user_ids=[int(ADMIN_ID)])]
    )
    router = CommandRouter()
    for handler in get_commands():
        router.register(handler)
    dispatcher = Dispatcher(sessions, channel, tenants, command_router=router, flows=flows)
    flows.register(dispatcher)
    return dispatcher
