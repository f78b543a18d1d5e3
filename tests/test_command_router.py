"""Tests for command routing."""

import pytest

from conftest import ADMIN_ID, DRIVER_ID, RecordingChannel, command_event, text_event
from fleetlog.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult
from fleetlog.channels.commands.router import CommandRouter
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import TenantContext


class MockCommandHandler(CommandHandler):
    """Mock command handler for testing."""

    def __init__(
        self,
        name: str,
        description: str = "Test command",
        hidden: bool = False,
        admin_only: bool = False,
        response: str = "Command executed",
    ) -> None:
        self._name = name
        self._description = description
        self._hidden = hidden
        self._admin_only = admin_only
        self._response = response
        self.calls: list[str] = []

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name=self._name,
            description=self._description,
            hidden=self._hidden,
            admin_only=self._admin_only,
        )

    async def handle(self, event, args, context) -> CommandResult:
        self.calls.append(args)
        return CommandResult(response=self._response)


@pytest.fixture
def router() -> CommandRouter:
    """Create a fresh command router."""
    return CommandRouter()


def make_context(event, router: CommandRouter) -> CommandContext:
    tenant = TenantContext(id="acme", name="ACME", admin_user_ids=frozenset({ADMIN_ID}))
    flow = FlowContext(event=event, sessions=SessionManager(), channel=RecordingChannel(), tenant=tenant)
    return CommandContext(flow=flow, command_router=router)


def test_register_handler(router: CommandRouter) -> None:
    handler = MockCommandHandler("test", "A test command")
    router.register(handler)

    assert router.get_handler("test") is handler
    assert router.get_handler("missing") is None


def test_list_commands_hides_hidden(router: CommandRouter) -> None:
    router.register(MockCommandHandler("visible"))
    router.register(MockCommandHandler("secret", hidden=True))

    assert [c.name for c in router.list_commands()] == ["visible"]
    assert {c.name for c in router.list_commands(include_hidden=True)} == {"visible", "secret"}


async def test_route_passes_args(router: CommandRouter) -> None:
    handler = MockCommandHandler("test")
    router.register(handler)
    event = command_event("/test@FleetBot some args")

    result = await router.route(event, make_context(event, router))

    assert result is not None
    assert result.response == "Command executed"
    assert handler.calls == ["some args"]


async def test_route_unknown_command(router: CommandRouter) -> None:
    event = command_event("/unknown")

    assert await router.route(event, make_context(event, router)) is None


async def test_route_ignores_text(router: CommandRouter) -> None:
    router.register(MockCommandHandler("test"))
    event = text_event("/test")

    assert await router.route(event, make_context(event, router)) is None


async def test_admin_only_denied(router: CommandRouter) -> None:
    handler = MockCommandHandler("manage", admin_only=True)
    router.register(handler)
    event = command_event("/manage", user_id=DRIVER_ID)

    result = await router.route(event, make_context(event, router))

    assert result is not None
    assert result.response == "This command is only available to administrators."
    assert handler.calls == []


async def test_admin_only_allowed(router: CommandRouter) -> None:
    handler = MockCommandHandler("manage", admin_only=True)
    router.register(handler)
    event = command_event("/manage", user_id=ADMIN_ID)

    result = await router.route(event, make_context(event, router))

    assert result.response == "Command executed"
