"""
Shared fixtures: fake Socket.IO client, fake REST client, fake clock.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
from loguru import logger
from socketio.exceptions import ConnectionError as SocketConnectionError

from sltbot.bot import Bot
from sltbot.config import BotConfig


class FakeSocketClient:
    """Stands in for ``socketio.AsyncClient``."""

    def __init__(self, fail_connects: int = 0) -> None:
        self.handlers: dict[str, Any] = {}
        self.connected = False
        self.emitted: list[tuple[str, Any]] = []
        self.connect_urls: list[str] = []
        self.fail_connects = fail_connects

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, transports: list[str] | None = None) -> None:
        self.connect_urls.append(url)
        if self.fail_connects:
            self.fail_connects -= 1
            raise SocketConnectionError("connection refused")
        self.connected = True
        await self.trigger("connect")

    async def disconnect(self) -> None:
        self.connected = False
        await self.trigger("disconnect", "client disconnect")

    async def emit(self, event: str, data: Any) -> None:
        self.emitted.append((event, data))

    async def trigger(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)

    async def drop(self) -> None:
        """Simulate the server going away."""
        self.connected = False
        await self.trigger("disconnect", "transport close")


class FakeClientFactory:
    def __init__(self, fail_connects: int = 0) -> None:
        self.fail_connects = fail_connects
        self.clients: list[FakeSocketClient] = []

    def __call__(self) -> FakeSocketClient:
        client = FakeSocketClient(self.fail_connects)
        self.clients.append(client)
        return client


class FakeAPI:
    """Stands in for ``SLTChatAPI``."""

    def __init__(self, users: dict[str, Any] | None = None) -> None:
        self.users = users or {}
        self.user_lookups: list[str] = []
        self.join_server = AsyncMock()
        self.change = AsyncMock()
        self.close = AsyncMock()
        self.get_server = AsyncMock(side_effect=lambda sid: {"id": sid, "name": f"Server {sid}"})

    async def get_user(self, user_id: str) -> Any:
        self.user_lookups.append(user_id)
        return self.users.get(user_id)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def envelope(text: str, owner_id: str = "user1", **owner: Any) -> dict[str, Any]:
    return {
        "text": text,
        "owner": {"id": owner_id, "name": owner.pop("name", "Alice"), **owner},
        "date": "2026-10-17T12:00:00",
        "server_id": "s1",
    }


@pytest.fixture
def log_messages():
    """Collect loguru output at WARNING and above."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(str(m)), level="WARNING", format="{message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI(
        users={
            "bot1": {"id": "bot1", "servers": ["s1", "s2"], "label": {"name": "BOT"}},
            "user1": {"id": "user1", "name": "Alice"},
            "sneaky": {"id": "sneaky", "label": {"name": "BOT"}},
        }
    )


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def on_error() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def on_message() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def make_bot(fake_api, client_factory, clock, sleeper, on_error, on_message):
    def factory(**config: Any) -> Bot:
        config.setdefault("on_error", on_error)
        config.setdefault("on_message", on_message)
        return Bot(
            BotConfig(**config),
            api=fake_api,
            client_factory=client_factory,
            clock=clock,
            sleep=sleeper,
        )
    return factory


@pytest.fixture
async def started_bot(make_bot):
    """A bot connected to s1 and s2, with no send interval."""
    bot = make_bot(rate_limit=0)
    await bot.start("token-abc", "bot1")
    await asyncio.gather(*list(bot._tasks))
    yield bot
    await bot.shutdown()
