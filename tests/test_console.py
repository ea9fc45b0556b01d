"""Tests for the operator console."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sltbot.console import OperatorConsole


@pytest.fixture
def bot():
    bot = MagicMock()
    for name in ("join", "change", "send", "broadcast", "reconnect", "disconnect", "shutdown"):
        setattr(bot, name, AsyncMock())
    bot.broadcast.return_value = {"s1": True, "s2": False}
    bot.reconnect.return_value = True
    bot.status.return_value = {
        "bot_id": "bot1",
        "token": "toke...",
        "servers": {"s1": "connected"},
        "connected": 1,
        "commands": ["ping"],
    }
    return bot


@pytest.fixture
def console(bot):
    return OperatorConsole(bot)


class TestConsole:
    async def test_addserver_joins(self, console, bot):
        assert await console.execute("addserver s9") is True
        bot.join.assert_awaited_once_with("s9")

    async def test_set_keeps_spaces_in_value(self, console, bot):
        assert await console.execute("set name My Bot") is True
        bot.change.assert_awaited_once_with("name", "My Bot")

    async def test_send_to_one_server(self, console, bot):
        assert await console.execute("send s1 hi there") is True
        bot.send.assert_awaited_once_with("hi there", "s1")

    async def test_send_all_broadcasts(self, console, bot):
        assert await console.execute("send all hello world") is True
        bot.broadcast.assert_awaited_once_with("hello world")
        bot.send.assert_not_awaited()

    async def test_reconnect(self, console, bot):
        assert await console.execute("reconnect s2") is True
        bot.reconnect.assert_awaited_once_with("s2")

    async def test_status_and_servers(self, console, bot):
        assert await console.execute("status") is True
        assert await console.execute("servers") is True
        assert bot.status.call_count == 2

    async def test_poweroff_shuts_down(self, console, bot):
        assert await console.execute("poweroff") is True
        bot.shutdown.assert_awaited_once()

    async def test_disconnect(self, console, bot):
        assert await console.execute("DISCONNECT") is True
        bot.disconnect.assert_awaited_once()

    async def test_blank_line_is_ignored(self, console, bot):
        assert await console.execute("   ") is True

    async def test_unknown_command(self, console, log_messages):
        assert await console.execute("launch rockets") is False
        assert any("Unknown command: launch" in m for m in log_messages)

    async def test_missing_argument_fails(self, console, bot, log_messages):
        assert await console.execute("addserver") is False
        bot.join.assert_not_awaited()
        assert any("missing argument <server_id>" in m for m in log_messages)

    async def test_bot_error_is_logged_not_raised(self, console, bot, log_messages):
        bot.send.side_effect = RuntimeError("not connected")
        assert await console.execute("send s1 hi") is False
        assert any("send failed: not connected" in m for m in log_messages)
