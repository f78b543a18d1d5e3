"""Telegram channel adapter using python-telegram-bot."""

import logging
import os
from datetime import UTC, datetime

from telegram import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import Application, CallbackQueryHandler, ContextTypes, MessageHandler, filters

from fleetlog.channels.base import Button, ChannelAdapter, EventCallback, EventKind, InboundEvent
from fleetlog.channels.commands.base import CommandDefinition

logger = logging.getLogger(__name__)


class TelegramChannel(ChannelAdapter):
    """Telegram channel adapter.

    Handles:
    - Bot initialization and lifecycle
    - Conversion of messages, commands and button presses to InboundEvent
    - User allowlisting
    - Inline keyboards on outgoing messages
    """

    name = "telegram"

    # Telegram maximum message length
    MAX_MESSAGE_LENGTH = 4096

    def __init__(
        self,
        token: str | None = None,
        allowed_users: list[int] | None = None,
        allow_all: bool = False,
    ):
        """Initialize the Telegram channel.

        Args:
            token: Bot token (falls back to TELEGRAM_BOT_TOKEN env var).
            allowed_users: List of allowed user IDs.
            allow_all: If True, every user passes the allowlist; tenant mapping still applies.
        """
        resolved_token = token or os.environ.get("TELEGRAM_BOT_TOKEN")
        if not resolved_token:
            raise ValueError("Telegram bot token required (pass token or set TELEGRAM_BOT_TOKEN)")
        self.token: str = resolved_token

        self.allowed_users = set(allowed_users or [])
        self.allow_all = allow_all
        self._app: Application | None = None  # type: ignore[type-arg]
        self._event_callback: EventCallback | None = None

    async def start(self) -> None:
        """Start the Telegram bot."""
        self._app = Application.builder().token(self.token).build()

        # Button presses first, then commands, then plain text
        self._app.add_handler(CallbackQueryHandler(self._handle_callback_query))
        self._app.add_handler(MessageHandler(filters.COMMAND, self._handle_command))
        self._app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message))

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling()  # type: ignore[union-attr]

        logger.info("Telegram channel started")

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        if self._app:
            await self._app.updater.stop()  # type: ignore[union-attr]
            await self._app.stop()
            await self._app.shutdown()
            logger.info("Telegram channel stopped")

    def on_event(self, callback: EventCallback) -> None:
        """Register callback for inbound events."""
        self._event_callback = callback

    async def register_commands(self, commands: list[CommandDefinition]) -> None:
        """Publish the command menu shown by Telegram clients."""
        if not self._app:
            raise RuntimeError("Telegram channel not started")

        bot_commands = [BotCommand(cmd.name, cmd.description) for cmd in commands if not cmd.hidden]
        await self._app.bot.set_my_commands(bot_commands)
        logger.info(f"Registered {len(bot_commands)} bot command(s)")

    async def send_message(
        self,
        session_key: str,
        content: str,
        buttons: list[list[Button]] | None = None,
    ) -> None:
        """Send a message to a Telegram chat.

        Splits messages that exceed Telegram's 4096-char limit. The inline
        keyboard is attached to the last chunk.

        Args:
            session_key: Session key in format 'telegram:chat_id:user_id'.
            content: Message text.
            buttons: Rows of inline buttons.
        """
        if not self._app:
            raise RuntimeError("Telegram channel not started")

        chat_id = int(session_key.split(":")[1])
        markup = self._build_keyboard(buttons) if buttons else None

        chunks = self._split_message(content)
        for index, chunk in enumerate(chunks):
            is_last = index == len(chunks) - 1
            await self._app.bot.send_message(
                chat_id=chat_id,
                text=chunk,
                reply_markup=markup if is_last else None,
            )

    @staticmethod
    def _build_keyboard(buttons: list[list[Button]]) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton(b.text, callback_data=b.data) for b in row] for row in buttons]
        )

    def _split_message(self, text: str) -> list[str]:
        """Split text into chunks that fit Telegram's message limit.

        Tries to break at paragraph boundaries (double newline), falls back
        to single newlines, then hard-splits as a last resort.
        """
        if len(text) <= self.MAX_MESSAGE_LENGTH:
            return [text]

        chunks: list[str] = []
        remaining = text

        while remaining:
            if len(remaining) <= self.MAX_MESSAGE_LENGTH:
                chunks.append(remaining)
                break

            split_at = remaining.rfind("\n\n", 0, self.MAX_MESSAGE_LENGTH)
            if split_at == -1:
                split_at = remaining.rfind("\n", 0, self.MAX_MESSAGE_LENGTH)
            if split_at == -1:
                split_at = self.MAX_MESSAGE_LENGTH

            chunks.append(remaining[:split_at])
            remaining = remaining[split_at:].lstrip("\n")

        return chunks

    def _is_allowed(self, update: Update) -> bool:
        """Check if the sender is allowed.

        - If allow_all is True, all users are allowed
        - Otherwise the user must be in allowed_users
        - With neither set, deny by default
        """
        if not update.effective_user:
            return False
        if self.allow_all:
            return True
        return update.effective_user.id in self.allowed_users

    def _to_event(self, update: Update, kind: EventKind) -> InboundEvent | None:
        """Convert a Telegram message update to an InboundEvent."""
        if not update.message or not update.effective_user or not update.effective_chat:
            return None

        chat_id = update.effective_chat.id
        user_id = update.effective_user.id
        return InboundEvent(
            session_key=self.build_session_key(chat_id, user_id),
            chat_id=chat_id,
            user_id=str(user_id),
            kind=kind,
            text=update.message.text or "",
            timestamp=update.message.date or datetime.now(UTC),
            metadata={
                "chat_type": update.effective_chat.type,
                "username": update.effective_user.username,
                "first_name": update.effective_user.first_name,
            },
        )

    async def _send_unauthorized_response(self, update: Update) -> None:
        """Tell a blocked user their ID so an operator can allowlist it."""
        if not update.effective_user or not update.effective_chat or not self._app:
            return

        user_id = update.effective_user.id
        await self._app.bot.send_message(
            chat_id=update.effective_chat.id,
            text=f"⛔ Access denied.\n\nYour user ID: {user_id}",
        )
        logger.warning(f"Blocked user {user_id}")

    async def _dispatch(self, event: InboundEvent | None) -> None:
        if event and self._event_callback:
            await self._event_callback(event)

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle incoming text messages."""
        if not self._is_allowed(update):
            await self._send_unauthorized_response(update)
            return
        await self._dispatch(self._to_event(update, EventKind.TEXT))

    async def _handle_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle incoming commands."""
        if not self._is_allowed(update):
            await self._send_unauthorized_response(update)
            return
        await self._dispatch(self._to_event(update, EventKind.COMMAND))

    async def _handle_callback_query(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle inline keyboard button presses."""
        query = update.callback_query
        if not query or not query.data:
            return

        await query.answer()  # Acknowledge the button press

        if not self._is_allowed(update):
            await self._send_unauthorized_response(update)
            return
        if not update.effective_user or not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        user_id = update.effective_user.id
        event = InboundEvent(
            session_key=self.build_session_key(chat_id, user_id),
            chat_id=chat_id,
            user_id=str(user_id),
            kind=EventKind.ACTION,
            action_data=query.data,
        )
        await self._dispatch(event)
