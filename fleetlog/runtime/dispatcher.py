"""Routes inbound events to the handler that owns them.

Matching runs in a fixed chain and the first handler that claims the event
wins:

1. slash commands, through the CommandRouter
2. button presses, by callback prefix
3. text, by the session's current state (one handler per state)

A handler claims an event by returning anything but ``False``. Unclaimed
events fall through silently.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from fleetlog.callbacks import decode_action
from fleetlog.channels.base import ChannelAdapter, EventKind, InboundEvent
from fleetlog.channels.commands import CommandContext, CommandRouter
from fleetlog.model.session import ConversationState
from fleetlog.runtime.context import FlowContext
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import TenantResolver

if TYPE_CHECKING:
    from fleetlog.flows import Flows

logger = logging.getLogger(__name__)

StateHandler = Callable[[FlowContext], Awaitable[bool | None]]
ActionHandler = Callable[[FlowContext, list[str]], Awaitable[bool | None]]

ACCESS_DENIED_MESSAGE = "⛔ This chat is not linked to any company. Ask an administrator to register it."
GENERIC_ERROR_MESSAGE = "Something went wrong. The current operation was cancelled, please try again."


class Dispatcher:
    """Entry point for every inbound user event."""

    def __init__(
        self,
        sessions: SessionManager,
        channel: ChannelAdapter,
        tenants: TenantResolver,
        command_router: CommandRouter | None = None,
        flows: "Flows | None" = None,
    ):
        self.sessions = sessions
        self.channel = channel
        self.tenants = tenants
        self.command_router = command_router
        self.flows = flows
        self._state_handlers: dict[ConversationState, StateHandler] = {}
        self._action_handlers: dict[str, ActionHandler] = {}

    def register_state(self, state: ConversationState, handler: StateHandler) -> None:
        """Register the text handler of a state.

        Raises:
            ValueError: The state is idle or already has a handler.
        """
        state = ConversationState(state)
        if state == ConversationState.IDLE:
            raise ValueError("The idle state has no text handler")
        if state in self._state_handlers:
            raise ValueError(f"State '{state}' already has a handler")
        self._state_handlers[state] = handler

    def register_action(self, prefix: str, handler: ActionHandler) -> None:
        """Register the handler of a button callback prefix.

        Raises:
            ValueError: The prefix already has a handler.
        """
        if prefix in self._action_handlers:
            raise ValueError(f"Action '{prefix}' already has a handler")
        self._action_handlers[prefix] = handler

    async def dispatch(self, event: InboundEvent) -> bool:
        """Handle one inbound event.

        Returns:
            True if some handler claimed the event.
        """
        tenant = self.tenants.resolve(event.chat_id)
        if tenant is None:
            logger.warning(f"Event from unmapped chat {event.chat_id} (user {event.user_id})")
            await self.channel.send_message(event.session_key, ACCESS_DENIED_MESSAGE)
            return False

        ctx = FlowContext(event=event, sessions=self.sessions, channel=self.channel, tenant=tenant)
        try:
            handled = await self._run_chain(ctx)
        except Exception as e:
            logger.error(
                f"Handler failed for {event.session_key} in state {ctx.state}: {e}",
                exc_info=True,
            )
            self.sessions.transition(event.session_key, ConversationState.IDLE, {})
            try:
                await self.channel.send_message(event.session_key, GENERIC_ERROR_MESSAGE)
            except Exception:
                logger.error(f"Failed to notify {event.session_key} after handler error", exc_info=True)
            return True

        if not handled:
            logger.debug(f"Unhandled {event.kind.value} event for {event.session_key} in state {ctx.state}")
        return handled

    async def _run_chain(self, ctx: FlowContext) -> bool:
        event = ctx.event

        if event.kind == EventKind.COMMAND and self.command_router is not None:
            command_context = CommandContext(flow=ctx, flows=self.flows, command_router=self.command_router)
            result = await self.command_router.route(event, command_context)
            if result is not None and result.handled:
                if result.response:
                    await ctx.reply(result.response, buttons=result.buttons)
                return True

        if event.kind == EventKind.ACTION and event.action_data:
            prefix, params = decode_action(event.action_data)
            action_handler = self._action_handlers.get(prefix)
            if action_handler is not None and await action_handler(ctx, params) is not False:
                return True

        if event.kind != EventKind.ACTION:
            state_handler = self._state_handlers.get(ctx.state)
            if state_handler is not None and await state_handler(ctx) is not False:
                return True

        return False
