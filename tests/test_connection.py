"""Tests for Connection and its reconnect policy."""

from unittest.mock import AsyncMock

import pytest

from sltbot.connection import Connection, ConnectionState, ReconnectPolicy
from sltbot.errors import NetworkError, NotConnectedError

from .conftest import FakeClientFactory


def make_connection(factory, sleeper, on_error=None, on_event=None, attempts=5):
    return Connection(
        "s1",
        "bot1",
        "https://chat.example",
        on_event=on_event or AsyncMock(),
        on_error=on_error,
        policy=ReconnectPolicy(attempts=attempts, base_delay=1.0),
        client_factory=factory,
        sleep=sleeper,
    )


class TestReconnectPolicy:
    def test_delays_double_from_base(self):
        assert ReconnectPolicy().delays() == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_custom_policy(self):
        policy = ReconnectPolicy(attempts=3, base_delay=0.5)
        assert policy.delays() == [0.5, 1.0, 2.0]
        assert policy.delay_for(3) == 2.0


class TestConnect:
    def test_starts_disconnected(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        assert conn.state == ConnectionState.DISCONNECTED
        assert not conn.connected

    def test_url_carries_server_and_user(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        assert conn.url == "https://chat.example?server=s1&user=bot1"

    async def test_connect_success(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        assert await conn.connect() is True
        assert conn.state == ConnectionState.CONNECTED
        assert conn.connected
        assert sleeper.delays == []

    async def test_connect_retries_with_backoff(self, sleeper):
        factory = FakeClientFactory(fail_connects=2)
        conn = make_connection(factory, sleeper)

        assert await conn.connect() is True
        assert sleeper.delays == [1.0, 2.0]
        assert len(factory.clients[0].connect_urls) == 3

    async def test_gives_up_after_max_attempts(self, sleeper):
        factory = FakeClientFactory(fail_connects=100)
        on_error = AsyncMock()
        conn = make_connection(factory, sleeper, on_error=on_error)

        assert await conn.connect() is False
        assert conn.state == ConnectionState.DISCONNECTED
        assert sleeper.delays == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert len(factory.clients[0].connect_urls) == 6

        on_error.assert_awaited_once()
        error, location = on_error.await_args.args
        assert isinstance(error, NetworkError)
        assert location == "connection:s1"

    async def test_zero_attempts_means_single_try(self, sleeper):
        factory = FakeClientFactory(fail_connects=1)
        conn = make_connection(factory, sleeper, attempts=0)
        assert await conn.connect() is False
        assert sleeper.delays == []


class TestDisconnect:
    async def test_dropped_connection_reconnects(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        await conn.connect()
        client = client_factory.clients[0]

        await client.drop()
        assert conn.state == ConnectionState.RECONNECTING

        assert await conn._reconnect_task is True
        assert conn.state == ConnectionState.CONNECTED
        assert sleeper.delays == [1.0]

    async def test_close_does_not_reconnect(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        await conn.connect()

        await conn.close()

        assert conn.state == ConnectionState.DISCONNECTED
        assert conn._reconnect_task is None
        assert len(client_factory.clients[0].connect_urls) == 1

    async def test_same_client_is_reused_across_reconnects(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        await conn.connect()
        await client_factory.clients[0].drop()
        await conn._reconnect_task
        assert len(client_factory.clients) == 1


class TestEvents:
    @pytest.mark.parametrize("event", ["message", "prompt"])
    async def test_inbound_events_are_forwarded(self, client_factory, sleeper, event):
        on_event = AsyncMock()
        conn = make_connection(client_factory, sleeper, on_event=on_event)
        await conn.connect()

        payload = {"text": "hi", "owner": {"id": "u"}}
        await client_factory.clients[0].trigger(event, payload)

        on_event.assert_awaited_once_with(payload, "s1")

    async def test_emit_requires_connection(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        with pytest.raises(NotConnectedError):
            await conn.emit("message", {"text": "x"})

    async def test_emit_when_connected(self, client_factory, sleeper):
        conn = make_connection(client_factory, sleeper)
        await conn.connect()
        await conn.emit("message", {"text": "x"})
        assert client_factory.clients[0].emitted == [("message", {"text": "x"})]
