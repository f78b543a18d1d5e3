"""Base channel adapter interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class EventKind(Enum):
    """What the user did."""

    TEXT = "text"
    COMMAND = "command"
    ACTION = "action"


@dataclass(frozen=True)
class Button:
    """An inline button; ``data`` is the callback string sent back when pressed."""

    text: str
    data: str


@dataclass
class InboundEvent:
    """Unified inbound user event across channels.

    Attributes:
        session_key: Conversation key ('telegram:<chat_id>:<user_id>').
        chat_id: Chat the event came from (used for tenant resolution).
        user_id: Sender.
        kind: Text message, command, or button press.
        text: Message text (empty for button presses).
        action_data: Callback data of the pressed button.
    """

    session_key: str
    chat_id: int
    user_id: str
    kind: EventKind
    text: str = ""
    action_data: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def parse_command(self) -> tuple[str, str]:
        """Parse command and arguments from a command event.

        Returns:
            Tuple of (command_name, arguments_string); the bot mention
            suffix (``/shifts@MyBot``) is stripped.
        """
        if self.kind != EventKind.COMMAND:
            return ("", self.text)

        parts = self.text.strip().split(maxsplit=1)
        command = parts[0][1:].split("@")[0]
        args = parts[1] if len(parts) > 1 else ""
        return (command, args)


EventCallback = Callable[[InboundEvent], Coroutine[Any, Any, Any]]


class ChannelAdapter(ABC):
    """Abstract base class for channel adapters.

    Channel adapters handle:
    - Protocol adaptation (platform updates to InboundEvent)
    - Access control (allowlists)
    - Message sending with inline buttons
    """

    name: str = "base"

    @abstractmethod
    async def start(self) -> None:
        """Start the channel adapter (connect, authenticate, etc.)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel adapter gracefully."""
        ...

    @abstractmethod
    async def send_message(
        self,
        session_key: str,
        content: str,
        buttons: list[list[Button]] | None = None,
    ) -> None:
        """Send a message to a session.

        Args:
            session_key: The session to send to.
            content: Message text.
            buttons: Rows of inline buttons shown under the message.
        """
        ...

    @abstractmethod
    def on_event(self, callback: EventCallback) -> None:
        """Register a callback for inbound events."""
        ...

    async def register_commands(self, commands: list[Any]) -> None:
        """Register available commands with the channel platform.

        Default implementation is a no-op.
        """
        pass

    def build_session_key(self, *parts: str | int) -> str:
        """Build a session key like 'channel:part1:part2'."""
        return f"{self.name}:" + ":".join(str(p) for p in parts)
