"""Tests for the Telegram channel adapter."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetlog.channels.base import Button, EventKind
from fleetlog.channels.telegram import TelegramChannel


def make_update(user_id: int = 12345, chat_id: int = -100500, text: str = "hello") -> MagicMock:
    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_user.username = "driver"
    update.effective_user.first_name = "Ana"
    update.effective_chat.id = chat_id
    update.effective_chat.type = "group"
    update.message.text = text
    update.message.date = datetime(2024, 1, 10, 8, 0, 0)
    return update


@pytest.fixture
def channel() -> TelegramChannel:
    channel = TelegramChannel(token="test-token", allowed_users=[12345])
    channel._app = MagicMock()
    channel._app.bot.send_message = AsyncMock()
    return channel


def test_token_required(monkeypatch):
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)

    with pytest.raises(ValueError, match="token"):
        TelegramChannel()


def test_token_from_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "env-token")

    assert TelegramChannel().token == "env-token"


class TestAllowlist:
    """Tests for sender filtering."""

    def test_listed_user(self, channel):
        assert channel._is_allowed(make_update(user_id=12345))

    def test_unlisted_user(self, channel):
        assert not channel._is_allowed(make_update(user_id=999))

    def test_allow_all(self):
        channel = TelegramChannel(token="t", allow_all=True)

        assert channel._is_allowed(make_update(user_id=999))

    def test_empty_allowlist_denies(self):
        channel = TelegramChannel(token="t")

        assert not channel._is_allowed(make_update())


class TestEvents:
    """Tests for update conversion and delivery."""

    def test_to_event(self, channel):
        event = channel._to_event(make_update(text="/shifts"), EventKind.COMMAND)

        assert event is not None
        assert event.session_key == "telegram:-100500:12345"
        assert event.chat_id == -100500
        assert event.user_id == "12345"
        assert event.kind == EventKind.COMMAND
        assert event.parse_command() == ("shifts", "")
        assert event.metadata["chat_type"] == "group"

    async def test_message_reaches_callback(self, channel):
        callback = AsyncMock()
        channel.on_event(callback)

        await channel._handle_message(make_update(text="1200"), MagicMock())

        event = callback.call_args.args[0]
        assert event.kind == EventKind.TEXT
        assert event.text == "1200"

    async def test_blocked_user_told_their_id(self, channel):
        callback = AsyncMock()
        channel.on_event(callback)

        await channel._handle_message(make_update(user_id=999), MagicMock())

        callback.assert_not_called()
        assert "999" in channel._app.bot.send_message.call_args.kwargs["text"]

    async def test_callback_query(self, channel):
        callback = AsyncMock()
        channel.on_event(callback)
        update = make_update()
        update.callback_query.data = "km_edit:7"
        update.callback_query.answer = AsyncMock()

        await channel._handle_callback_query(update, MagicMock())

        update.callback_query.answer.assert_awaited_once()
        event = callback.call_args.args[0]
        assert event.kind == EventKind.ACTION
        assert event.action_data == "km_edit:7"
        assert event.session_key == "telegram:-100500:12345"


class TestSending:
    """Tests for outgoing messages."""

    async def test_buttons_become_inline_keyboard(self, channel):
        await channel.send_message(
            "telegram:-100500:12345",
            "Pick one",
            buttons=[[Button("Yes", "fuel_amount_ok"), Button("No", "fuel_amount_fix")]],
        )

        kwargs = channel._app.bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == -100500
        keyboard = kwargs["reply_markup"].inline_keyboard
        assert [b.callback_data for b in keyboard[0]] == ["fuel_amount_ok", "fuel_amount_fix"]

    async def test_long_message_keyboard_on_last_chunk(self, channel):
        text = ("x" * 3000 + "\n\n") * 2

        await channel.send_message("telegram:-100500:12345", text, buttons=[[Button("Ok", "menu_cancel")]])

        calls = channel._app.bot.send_message.call_args_list
        assert len(calls) == 2
        assert calls[0].kwargs["reply_markup"] is None
        assert calls[1].kwargs["reply_markup"] is not None

    async def test_send_before_start(self):
        channel = TelegramChannel(token="t")

        with pytest.raises(RuntimeError):
            await channel.send_message("telegram:1:2", "hi")

    async def test_register_commands_skips_hidden(self, channel):
        from fleetlog.channels.commands.base import CommandDefinition

        channel._app.bot.set_my_commands = AsyncMock()

        await channel.register_commands(
            [CommandDefinition("start", "Init", hidden=True), CommandDefinition("help", "Show help")]
        )

        commands = channel._app.bot.set_my_commands.call_args.args[0]
        assert [c.command for c in commands] == ["help"]


class TestSplitMessage:
    """Tests for splitting long text."""

    def test_short_text_untouched(self, channel):
        assert channel._split_message("short") == ["short"]

    def test_prefers_paragraph_breaks(self, channel):
        first = "a" * 4000
        second = "b" * 200

        assert channel._split_message(f"{first}\n\n{second}") == [first, second]

    def test_hard_split(self, channel):
        chunks = channel._split_message("z" * 5000)

        assert [len(c) for c in chunks] == [4096, 904]
