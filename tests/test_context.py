"""Tests for Context."""

from unittest.mock import AsyncMock, MagicMock

from sltbot.context import Context

from .conftest import FakeAPI, envelope


def make_bot(api=None):
    bot = MagicMock()
    bot.api = api
    bot.send = AsyncMock()
    return bot


class TestContext:
    async def test_fields_are_copied_from_message(self):
        message = envelope("hello", owner_id="u7", name="Bob")
        ctx = Context(message, "s1", make_bot(), raw=message)

        assert ctx.content == "hello"
        assert ctx.author_id == "u7"
        assert ctx.author_name == "Bob"
        assert ctx.date == "2026-10-17T12:00:00"
        assert ctx.raw is message

        message["owner"]["name"] = "Mallory"
        assert ctx.author_name == "Bob"

    async def test_author_name_falls_back_to_id(self):
        ctx = Context({"text": "x", "owner": {"id": 42}}, "s1", make_bot())
        assert ctx.author_name == "42"

    async def test_missing_owner(self):
        ctx = Context({"text": "x"}, "s1", make_bot())
        assert ctx.author_id == ""
        assert ctx.owner == {}

    async def test_reply_sends_to_origin_server(self):
        bot = make_bot()
        ctx = Context(envelope("hi"), "s2", bot)

        await ctx.reply("pong")

        bot.send.assert_awaited_once_with("pong", "s2")

    async def test_server_is_resolved_in_background(self):
        api = FakeAPI()
        ctx = Context(envelope("hi"), "s1", make_bot(api))

        assert await ctx.fetch_server() == {"id": "s1", "name": "Server s1"}
        assert ctx.server == {"id": "s1", "name": "Server s1"}
        api.get_server.assert_awaited_once_with("s1")

    async def test_failed_server_lookup_leaves_none(self):
        api = FakeAPI()
        api.get_server.side_effect = RuntimeError("down")
        ctx = Context(envelope("hi"), "s1", make_bot(api))

        assert await ctx.fetch_server() is None

    async def test_no_api_means_no_lookup(self):
        ctx = Context(envelope("hi"), "s1", make_bot())
        assert await ctx.fetch_server() is None
