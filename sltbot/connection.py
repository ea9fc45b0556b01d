"""
One Socket.IO client per joined server.

State machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED   (close())
                                            -> RECONNECTING  (dropped)
    RECONNECTING -> CONNECTED | DISCONNECTED (attempts exhausted)

Socket.IO's built-in reconnection is switched off; ``ReconnectPolicy`` is the
only retry logic. The Connection object survives reconnects, it is never
recreated for the same server.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Union
from urllib.parse import urlencode

import socketio
from loguru import logger
from socketio.exceptions import ConnectionError as SocketConnectionError
from socketio.exceptions import SocketIOError

from sltbot.errors import NetworkError, NotConnectedError

EventCallback = Callable[[Any, str], Awaitable[None]]
ErrorCallback = Callable[[BaseException, str], Union[Awaitable[None], None]]
ClientFactory = Callable[[], Any]

INBOUND_EVENTS = ("message", "prompt")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class ReconnectPolicy:
    """Exponential backoff: ``base_delay * 2 ** (attempt - 1)``."""

    attempts: int = 5
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * 2 ** (attempt - 1)

    def delays(self) -> list[float]:
        return [self.delay_for(n) for n in range(1, self.attempts + 1)]


def default_client_factory() -> socketio.AsyncClient:
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


class Connection:
    """A live socket to one server."""

    def __init__(
        self,
        server_id: str,
        bot_id: str,
        base_url: str,
        *,
        on_event: EventCallback,
        on_error: ErrorCallback | None = None,
        policy: ReconnectPolicy | None = None,
        client_factory: ClientFactory | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.server_id = server_id
        self.bot_id = bot_id
        self.base_url = base_url
        self.policy = policy or ReconnectPolicy()
        self.state = ConnectionState.DISCONNECTED

        self._on_event = on_event
        self._on_error = on_error
        self._sleep = sleep
        self._closing = False
        self._reconnect_task: asyncio.Task | None = None

        self._client = (client_factory or default_client_factory)()
        self._register_handlers()

    @property
    def url(self) -> str:
        return f"{self.base_url}?{urlencode({'server': self.server_id, 'user': self.bot_id})}"

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED and bool(self._client.connected)

    # ------------------------------------------------------------------
    # Socket events
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        self._client.on("connect", self._handle_connect)
        self._client.on("disconnect", self._handle_disconnect)
        self._client.on("connect_error", self._handle_connect_error)
        for event in INBOUND_EVENTS:
            self._client.on(event, self._make_forwarder(event))

    def _make_forwarder(self, event: str) -> Callable[[Any], Awaitable[None]]:
        async def forward(payload: Any) -> None:
            await self._on_event(payload, self.server_id)
        forward.__name__ = f"on_{event}"
        return forward

    async def _handle_connect(self) -> None:
        self.state = ConnectionState.CONNECTED
        logger.info(f"[conn:{self.server_id}] Connected to server [{self.server_id}]")

    async def _handle_disconnect(self, *args: Any) -> None:
        if self._closing or self.policy.attempts == 0:
            self.state = ConnectionState.DISCONNECTED
            logger.info(f"[conn:{self.server_id}] Disconnected from server [{self.server_id}]")
            return

        logger.warning(f"[conn:{self.server_id}] Connection to server [{self.server_id}] lost")
        self.state = ConnectionState.RECONNECTING
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.ensure_future(self._reconnect())

    async def _handle_connect_error(self, data: Any = None) -> None:
        logger.error(f"[conn:{self.server_id}] Socket error: {data}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the socket, falling back to the backoff loop on failure.

        Returns True once connected, False after every attempt failed.
        """
        self._closing = False
        self.state = ConnectionState.CONNECTING
        if await self._attempt():
            return True
        return await self._reconnect()

    async def _attempt(self) -> bool:
        try:
            await self._client.connect(self.url, transports=["websocket"])
        except (SocketConnectionError, OSError) as exc:
            logger.warning(f"[conn:{self.server_id}] Connect failed: {exc}")
            return False
        self.state = ConnectionState.CONNECTED
        return True

    async def _reconnect(self) -> bool:
        for attempt, delay in enumerate(self.policy.delays(), start=1):
            if self._closing:
                break
            self.state = ConnectionState.RECONNECTING
            logger.info(
                f"[conn:{self.server_id}] Reconnect attempt {attempt}/{self.policy.attempts} "
                f"in {delay:.1f}s"
            )
            await self._sleep(delay)
            if self._closing:
                break
            if await self._attempt():
                return True

        self.state = ConnectionState.DISCONNECTED
        if not self._closing:
            error = NetworkError(
                f"Could not connect to server [{self.server_id}] "
                f"after {self.policy.attempts} attempt(s)"
            )
            logger.error(f"[conn:{self.server_id}] {error}")
            await self._report(error)
        return False

    async def close(self) -> None:
        """Disconnect on purpose; no reconnect is scheduled."""
        self._closing = True
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if self._client.connected:
            await self._client.disconnect()
        self.state = ConnectionState.DISCONNECTED

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        if not self.connected:
            raise NotConnectedError(self.server_id)
        try:
            await self._client.emit(event, payload)
        except SocketIOError as exc:
            raise NetworkError(f"Emit to server [{self.server_id}] failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _report(self, error: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            result = self._on_error(error, f"connection:{self.server_id}")
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(f"[conn:{self.server_id}] Error hook failed: {exc}")

    def __repr__(self) -> str:
        return f"Connection(server_id={self.server_id!r}, state={self.state.value!r})"
