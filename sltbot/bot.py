"""
The bot session: owns the server connections and routes inbound messages.

Flow for every inbound ``message`` / ``prompt`` socket event:

    envelope -> unwrap + validate -> skip automated senders
             -> Context -> on_message hook + "message" event
             -> prefixed? -> CommandRegistry.execute(name, ctx, args)

Anything that goes wrong inside one message's dispatch is logged, passed to
the ``on_error`` hook and the "error" event, and stops there: neither the
socket nor the other pending dispatches are affected. Only a failed identity
lookup in ``start()`` is allowed to abort.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import defaultdict
from typing import Any, Awaitable, Callable, Iterable

from loguru import logger

from sltbot.api import SLTChatAPI
from sltbot.commands import CommandHandler, CommandRegistry
from sltbot.config import BotConfig
from sltbot.connection import ClientFactory, Connection, ReconnectPolicy
from sltbot.context import Context
from sltbot.embed import EmbedBuilder
from sltbot.errors import (
    CommandNotFoundError,
    DuplicateError,
    NetworkError,
    NotConnectedError,
    ProtocolError,
    RateLimitError,
)
from sltbot.formatter import format_message

BOT_LABEL = "BOT"

EVENTS = ("ready", "message", "error", "shutdown")

Listener = Callable[..., Any]


def _is_bot_label(owner: dict[str, Any]) -> bool:
    label = owner.get("label")
    return isinstance(label, dict) and label.get("name") == BOT_LABEL


def unwrap_envelope(payload: Any) -> dict[str, Any]:
    """Return the real message from an inbound payload.

    Accepts both ``{"text": ..., "owner": ...}`` and the same object nested
    under ``"message"``. Raises ``ProtocolError`` when sender id or text is
    missing.
    """
    if not isinstance(payload, dict):
        raise ProtocolError(f"Expected an object, got {type(payload).__name__}")
    nested = payload.get("message")
    message = nested if isinstance(nested, dict) else payload

    owner = message.get("owner")
    if not isinstance(owner, dict) or not owner.get("id"):
        raise ProtocolError("Message has no sender id")
    text = message.get("text")
    if not isinstance(text, str) or not text:
        raise ProtocolError("Message has no text")
    return message


class Bot:
    """A chat bot connected to one or more servers.

    Usage::

        bot = Bot(BotConfig(prefix="!"))

        @bot.command()
        async def ping(ctx, args):
            await ctx.reply("pong")

        await bot.run(token, bot_id)
    """

    def __init__(
        self,
        config: BotConfig | None = None,
        *,
        registry: CommandRegistry | None = None,
        api: SLTChatAPI | None = None,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or BotConfig()
        self.commands = registry or CommandRegistry()
        self.api = api

        self.token = ""
        self.bot_id = ""
        self.server_ids: list[str] = []
        self.connections: dict[str, Connection] = {}

        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._last_sent: dict[str, float] = {}
        self._tasks: set[asyncio.Task] = set()
        self._joining: set[str] = set()
        self._stopped = asyncio.Event()

        self._client_factory = client_factory
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def command(self, name: str | None = None) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator registering a command on this bot's registry."""
        return self.commands.command(name)

    def add_command(self, name: str, handler: CommandHandler) -> "Bot":
        self.commands.register(name, handler)
        return self

    def on(self, event: str, handler: Listener | None = None) -> Any:
        """Subscribe to ``ready``, ``message``, ``error`` or ``shutdown``.

        Works as a plain call or as a decorator (``@bot.on("ready")``).
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown event {event!r}, expected one of {EVENTS}")

        def decorator(fn: Listener) -> Listener:
            self._listeners[event].append(fn)
            return fn

        return decorator(handler) if handler is not None else decorator

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def start(self, token: str, bot_id: str) -> None:
        """Look up the bot's servers, open a connection to each, signal ready.

        Connections are initiated, not awaited; each one logs its own
        confirmation.
        """
        self.token = token
        self.bot_id = bot_id
        if self.api is None:
            self.api = SLTChatAPI(
                token,
                bot_id,
                base_url=self.config.base_url,
                cache_ttl=self.config.cache_ttl,
            )

        user = await self.api.get_user(bot_id)
        servers = (user or {}).get("servers") or []
        if not servers:
            error = NetworkError("Bot user not found or no servers assigned")
            logger.error(f"[bot] Startup failed for [{bot_id}]: {error}")
            await self._report(error, "start")
            raise error

        self.server_ids = [str(s) for s in servers]
        logger.info(f"[bot] Connecting to servers: {self.server_ids}")

        for server_id in self.server_ids:
            connection = self._create_connection(server_id)
            self._spawn(connection.connect())

        await self._call_hook(self.config.on_start, "on_start")
        await self._emit("ready", list(self.server_ids))

    async def run(self, token: str, bot_id: str, *, console: bool = False) -> None:
        """Start and block until ``shutdown()``."""
        await self.start(token, bot_id)

        console_task: asyncio.Task | None = None
        if console:
            from sltbot.console import OperatorConsole
            console_task = asyncio.create_task(OperatorConsole(self).run(), name="console")

        try:
            await self._stopped.wait()
        finally:
            if console_task is not None and not console_task.done():
                console_task.cancel()
            if not self._stopped.is_set():
                await self.shutdown()

    async def disconnect(self) -> None:
        """Close every connection; joined servers are kept."""
        for server_id, connection in self.connections.items():
            try:
                await connection.close()
                logger.info(f"[bot] Disconnected from server [{server_id}]")
            except Exception as exc:
                logger.warning(f"[bot] Error disconnecting from [{server_id}]: {exc}")

    async def shutdown(self) -> None:
        logger.info("[bot] Shutting down the bot...")
        await self._emit("shutdown")
        await self.disconnect()
        for task in list(self._tasks):
            task.cancel()
        if self.api is not None:
            await self.api.close()
        self._stopped.set()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_message(self, payload: Any, server_id: str) -> Context | None:
        """Dispatch one inbound socket event. Never raises."""
        try:
            message = unwrap_envelope(payload)
        except ProtocolError as exc:
            logger.debug(f"[bot] Dropped malformed message from [{server_id}]: {exc}")
            return None

        try:
            owner = message["owner"]
            if _is_bot_label(owner):
                return None
            if self.config.verify_senders and await self.is_bot(str(owner["id"])):
                return None

            ctx = Context(message, server_id, self, raw=payload)
            await self._call_hook(self.config.on_message, "on_message", ctx)
            await self._emit("message", ctx)

            if message["text"].startswith(self.config.prefix):
                await self._dispatch_command(ctx, message["text"])
            return ctx
        except Exception as exc:
            logger.error(f"[bot] Error handling message from [{server_id}]: {exc}")
            await self._report(exc, "handle_message")
            return None

    async def _dispatch_command(self, ctx: Context, text: str) -> None:
        parts = text[len(self.config.prefix):].split()
        if not parts:
            return
        name = parts[0].lower()
        args = " ".join(parts[1:])
        location = f"command:{name}"

        try:
            await self.commands.execute(name, ctx, args)
        except CommandNotFoundError as exc:
            logger.warning(f"[bot] {exc} (from {ctx.author_id} on [{ctx.server_id}])")
            await self._report(exc, location)
            await self._echo_error(ctx, exc)
        except Exception as exc:
            logger.error(f"[bot] Command {name!r} failed: {exc}")
            await self._report(exc, location)
            await self._echo_error(ctx, exc)

    async def _echo_error(self, ctx: Context, error: BaseException) -> None:
        if not self.config.reply_on_error:
            return
        try:
            await ctx.reply(f"Error: {error}")
        except Exception as exc:
            logger.warning(f"[bot] Could not send error reply to [{ctx.server_id}]: {exc}")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _render(self, content: Any) -> str:
        if isinstance(content, EmbedBuilder):
            text = content.build()
        elif isinstance(content, str):
            text = format_message(content, self.config.max_length)
        else:
            raise ValueError(f"Cannot send {type(content).__name__}, expected str or EmbedBuilder")
        if not text:
            raise ValueError("Cannot send an empty message")
        return text

    async def send(self, content: "str | EmbedBuilder", server_id: str) -> None:
        """Format and send a message to one server.

        Raises:
            NotConnectedError: no live connection to ``server_id``.
            ValueError: empty or non-string payload.
            RateLimitError: the previous send to this server was too recent.
            NetworkError: the socket rejected the emit.
        """
        connection = self.connections.get(server_id)
        if connection is None or not connection.connected:
            raise NotConnectedError(server_id)

        text = self._render(content)

        now = self._clock()
        previous = self._last_sent.get(server_id)
        if previous is not None and now - previous < self.config.rate_limit:
            error = RateLimitError(server_id, self.config.rate_limit - (now - previous))
            logger.warning(f"[bot] {error}")
            raise error

        # Reserve the slot before suspending so a concurrent send sees it
        self._last_sent[server_id] = now
        try:
            await connection.emit(
                "message",
                {"text": text, "server_id": server_id, "token": self.token, "op": self.bot_id},
            )
        except Exception:
            if previous is None:
                self._last_sent.pop(server_id, None)
            else:
                self._last_sent[server_id] = previous
            raise
        logger.debug(f"[bot] Sent to [{server_id}]: {text[:80]!r}")

    async def broadcast(
        self,
        content: "str | EmbedBuilder",
        server_ids: Iterable[str] | None = None,
    ) -> dict[str, bool]:
        """Send to several servers (all joined ones by default)."""
        results: dict[str, bool] = {}
        for server_id in list(server_ids if server_ids is not None else self.server_ids):
            try:
                await self.send(content, server_id)
                results[server_id] = True
            except Exception as exc:
                logger.warning(f"[bot] Broadcast to [{server_id}] failed: {exc}")
                results[server_id] = False
        return results

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    async def join(self, server_id: str) -> None:
        """Join a server and connect to it.

        The REST join and the socket open are separate steps. If the socket
        cannot be opened the server stays joined and ``NetworkError`` is
        raised; call ``reconnect(server_id)`` to retry just the connection.
        """
        if server_id in self.server_ids or server_id in self._joining:
            raise DuplicateError(f"Already joined server [{server_id}]")
        api = self._require_api()

        self._joining.add(server_id)
        try:
            await api.join_server(server_id)
        except Exception as exc:
            logger.error(f"[bot] Could not join server [{server_id}]: {exc}")
            await self._report(exc, f"join:{server_id}")
            raise
        else:
            self.server_ids.append(server_id)
        finally:
            self._joining.discard(server_id)

        if not await self.reconnect(server_id):
            raise NetworkError(
                f"Joined server [{server_id}] but could not connect; retry with reconnect()"
            )

    async def reconnect(self, server_id: str) -> bool:
        """(Re)open the connection to an already joined server."""
        if server_id not in self.server_ids:
            raise ValueError(f"Server [{server_id}] is not joined")
        connection = self.connections.get(server_id) or self._create_connection(server_id)
        if connection.connected:
            return True
        return await connection.connect()

    def is_connected(self, server_id: str) -> bool:
        connection = self.connections.get(server_id)
        return connection is not None and connection.connected

    @property
    def servers(self) -> list[str]:
        return list(self.server_ids)

    async def change(self, key: str, value: str) -> None:
        api = self._require_api()
        try:
            await api.change(key, value)
        except Exception as exc:
            logger.error(f"[bot] Could not change [{key}]: {exc}")
            await self._report(exc, "change")
            raise

    async def is_bot(self, user_id: str) -> bool:
        """Cached lookup of whether ``user_id`` is an automated account."""
        user = await self._require_api().get_user(user_id)
        return isinstance(user, dict) and _is_bot_label(user)

    def status(self) -> dict[str, Any]:
        token = f"{self.token[:4]}..." if self.token else ""
        return {
            "bot_id": self.bot_id,
            "token": token,
            "servers": {sid: self._state_of(sid) for sid in self.server_ids},
            "connected": sum(1 for sid in self.server_ids if self.is_connected(sid)),
            "commands": self.commands.names(),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_connection(self, server_id: str) -> Connection:
        connection = Connection(
            server_id,
            self.bot_id,
            self.config.base_url,
            on_event=self.handle_message,
            on_error=self._report,
            policy=ReconnectPolicy(
                attempts=self.config.reconnect_attempts,
                base_delay=self.config.reconnect_delay,
            ),
            client_factory=self._client_factory,
            sleep=self._sleep,
        )
        self.connections[server_id] = connection
        return connection

    def _state_of(self, server_id: str) -> str:
        connection = self.connections.get(server_id)
        return connection.state.value if connection else "disconnected"

    def _require_api(self) -> SLTChatAPI:
        if self.api is None:
            raise RuntimeError("Bot is not started. Call start() or run() first.")
        return self.api

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _call_hook(self, hook: Callable[..., Any] | None, location: str, *args: Any) -> None:
        if hook is None:
            return
        try:
            result = hook(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(f"[bot] {location} hook failed: {exc}")
            await self._report(exc, location)

    async def _report(self, error: BaseException, location: str) -> None:
        """Route a failure to the on_error hook and "error" listeners."""
        hook = self.config.on_error
        if hook is not None:
            try:
                result = hook(error, location)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error(f"[bot] on_error hook failed: {exc}")
        await self._emit("error", error, location)

    async def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error(f"[bot] Listener for {event!r} failed: {exc}")

    def __repr__(self) -> str:
        return f"Bot(bot_id={self.bot_id!r}, servers={self.server_ids}, commands={len(self.commands)})"
