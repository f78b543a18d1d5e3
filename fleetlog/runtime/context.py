"""Context handed to flow handlers for a single inbound event."""

from dataclasses import dataclass
from typing import Any

from fleetlog.channels.base import Button, ChannelAdapter, InboundEvent
from fleetlog.model.session import ConversationSession, ConversationState
from fleetlog.runtime.session import SessionManager
from fleetlog.tenancy import TenantContext


@dataclass
class FlowContext:
    """The event being handled plus everything a handler may touch."""

    event: InboundEvent
    sessions: SessionManager
    channel: ChannelAdapter
    tenant: TenantContext

    @property
    def session_key(self) -> str:
        return self.event.session_key

    @property
    def session(self) -> ConversationSession:
        return self.sessions.get(self.event.session_key)

    @property
    def state(self) -> ConversationState:
        return self.session.state

    @property
    def data(self) -> dict[str, Any]:
        return self.session.data

    @property
    def tenant_id(self) -> str:
        return self.tenant.id

    @property
    def user_id(self) -> str:
        return self.event.user_id

    async def reply(self, text: str, buttons: list[list[Button]] | None = None) -> None:
        await self.channel.send_message(self.event.session_key, text, buttons=buttons)

    def transition(self, state: ConversationState, data: dict[str, Any] | None = None) -> None:
        """Change state; ``data`` None keeps the current data bag."""
        self.sessions.transition(self.event.session_key, state, data)

    def reset(self) -> None:
        self.sessions.reset(self.event.session_key)

    async def reply_nothing_to_cancel(self, text: str) -> None:
        """Answer a cancel button whose flow is not the active one; the session is left as is."""
        if self.state != ConversationState.IDLE:
            text += " Your current process continues."
        await self.reply(text)
