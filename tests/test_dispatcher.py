"""Tests for Dispatcher routing, fall-through and error recovery."""

import pytest

from conftest import CHAT_ID, RecordingChannel, action_event, command_event, session_key, text_event
from fleetlog.channels.commands import CommandDefinition, CommandHandler, CommandResult, CommandRouter
from fleetlog.core.config import TenantConfig
from fleetlog.model.session import ConversationState
from fleetlog.runtime.dispatcher import ACCESS_DENIED_MESSAGE, GENERIC_ERROR_MESSAGE, Dispatcher
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import ConfigTenantResolver


class EchoCommand(CommandHandler):
    """Replies with its arguments."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(name="echo", description="Echo")

    async def handle(self, event, args, context) -> CommandResult:
        return CommandResult(response=f"echo {args}")


class DeclineCommand(CommandHandler):
    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(name="pass", description="Declines")

    async def handle(self, event, args, context) -> CommandResult:
        return CommandResult(handled=False)


@pytest.fixture
def sessions() -> SessionManager:
    return SessionManager()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(sessions, channel) -> Dispatcher:
    router = CommandRouter()
    router.register(EchoCommand())
    router.register(DeclineCommand())
    tenants = ConfigTenantResolver([TenantConfig(id="acme", chat_ids=[CHAT_ID])])
    return Dispatcher(sessions, channel, tenants, command_router=router)


class TestRegistration:
    """Tests for handler registration rules."""

    def test_one_handler_per_state(self, dispatcher):
        async def handler(ctx):
            return None

        dispatcher.register_state(ConversationState.FUEL_AWAITING_KM, handler)

        with pytest.raises(ValueError):
            dispatcher.register_state(ConversationState.FUEL_AWAITING_KM, handler)

    def test_idle_has_no_handler(self, dispatcher):
        async def handler(ctx):
            return None

        with pytest.raises(ValueError):
            dispatcher.register_state(ConversationState.IDLE, handler)

    def test_duplicate_action_prefix(self, dispatcher):
        async def handler(ctx, params):
            return None

        dispatcher.register_action("fuel_save", handler)

        with pytest.raises(ValueError):
            dispatcher.register_action("fuel_save", handler)


class TestDispatch:
    """Tests for the dispatch chain."""

    async def test_unmapped_chat_denied(self, dispatcher, channel, sessions):
        handled = await dispatcher.dispatch(text_event("hello", chat_id=999))

        assert not handled
        assert channel.last.text == ACCESS_DENIED_MESSAGE
        assert sessions.list_sessions() == {}

    async def test_command_routed(self, dispatcher, channel):
        assert await dispatcher.dispatch(command_event("/echo hi there"))

        assert channel.last.text == "echo hi there"

    async def test_command_with_bot_mention(self, dispatcher, channel):
        assert await dispatcher.dispatch(command_event("/echo@FleetBot x"))

        assert channel.last.text == "echo x"

    async def test_text_routed_by_state(self, dispatcher, sessions):
        seen = []

        async def handler(ctx):
            seen.append((ctx.event.text, ctx.tenant_id))

        dispatcher.register_state(ConversationState.FUEL_AWAITING_LITERS, handler)
        sessions.transition(session_key(), ConversationState.FUEL_AWAITING_LITERS, {})

        assert await dispatcher.dispatch(text_event("40"))
        assert seen == [("40", "acme")]

    async def test_idle_text_falls_through_silently(self, dispatcher, channel):
        assert not await dispatcher.dispatch(text_event("random chatter"))
        assert channel.sent == []

    async def test_action_routed_with_params(self, dispatcher):
        seen = []

        async def handler(ctx, params):
            seen.append(params)

        dispatcher.register_action("km_force", handler)

        assert await dispatcher.dispatch(action_event("km_force:7:120.5"))
        assert seen == [["7", "120.5"]]

    async def test_unknown_action_unhandled(self, dispatcher):
        assert not await dispatcher.dispatch(action_event("nope:1"))

    async def test_declined_command_falls_through_to_state(self, dispatcher, sessions):
        seen = []

        async def handler(ctx):
            seen.append(ctx.event.text)

        dispatcher.register_state(ConversationState.FUEL_AWAITING_SALE_NUMBER, handler)
        sessions.transition(session_key(), ConversationState.FUEL_AWAITING_SALE_NUMBER, {})

        assert await dispatcher.dispatch(command_event("/pass"))
        assert seen == ["/pass"]

    async def test_declining_state_handler_is_unhandled(self, dispatcher, sessions):
        async def handler(ctx):
            return False

        dispatcher.register_state(ConversationState.FUEL_AWAITING_PRICE, handler)
        sessions.transition(session_key(), ConversationState.FUEL_AWAITING_PRICE, {})

        assert not await dispatcher.dispatch(text_event("12"))

    async def test_handler_error_resets_session(self, dispatcher, sessions, channel):
        """An exception inside a handler forces the session back to idle."""

        async def handler(ctx):
            ctx.data["partial"] = True
            raise RuntimeError("boom")

        dispatcher.register_state(ConversationState.BATCH_CAPTURING_KM, handler)
        sessions.transition(session_key(), ConversationState.BATCH_CAPTURING_KM, {"job": "queue"})

        assert await dispatcher.dispatch(text_event("100"))

        session = sessions.get(session_key())
        assert session.state == ConversationState.IDLE
        assert session.data == {}
        assert channel.last.text == GENERIC_ERROR_MESSAGE

    async def test_error_while_notifying_is_contained(self, dispatcher, sessions, channel, monkeypatch):
        async def handler(ctx, params):
            raise RuntimeError("boom")

        async def broken_send(*args, **kwargs):
            raise ConnectionError("offline")

        dispatcher.register_action("fuel_save", handler)
        sessions.transition(session_key(), ConversationState.FUEL_AWAITING_CONFIRM, {"draft": 1})
        monkeypatch.setattr(channel, "send_message", broken_send)

        assert await dispatcher.dispatch(action_event("fuel_save"))
        assert sessions.get_state(session_key()) == ConversationState.IDLE
