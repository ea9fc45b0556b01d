"""
Command system — @command decorator + CommandRegistry.

Design:
- Every handler has the same signature: ``handler(ctx, args)``, where
  ``args`` is the joined argument string ("" when none were given)
- Sync and async handlers are both accepted
- Names are case-insensitive; re-registering a name replaces the handler
  and logs a warning
- Each Bot owns its own registry
"""

from __future__ import annotations

import inspect
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from loguru import logger

from sltbot.errors import CommandNotFoundError

if TYPE_CHECKING:
    from sltbot.context import Context

CommandHandler = Callable[["Context", str], Union[Awaitable[None], None]]


def _normalize(name: str) -> str:
    return name.strip().lower()


class CommandRegistry:
    """Name-keyed table of command handlers."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}

    def register(self, name: str, handler: CommandHandler) -> None:
        if not isinstance(name, str) or not _normalize(name):
            raise ValueError("Command name must be a non-empty string")
        if not callable(handler):
            raise TypeError(f"Handler for command {name!r} is not callable")

        key = _normalize(name)
        if key in self._commands:
            logger.warning(f"[commands] Command {key!r} already registered, overwriting")
        self._commands[key] = handler
        logger.debug(f"[commands] Registered command: {key!r}")

    def command(self, name: str | None = None) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator that registers a function as a command.

        Usage::

            @registry.command()
            async def ping(ctx, args):
                await ctx.reply("pong")

            @registry.command("roll")
            def roll_dice(ctx, args):
                ...
        """
        def decorator(fn: CommandHandler) -> CommandHandler:
            self.register(name or fn.__name__, fn)
            return fn

        return decorator

    def unregister(self, name: str) -> bool:
        return self._commands.pop(_normalize(name), None) is not None

    def get(self, name: str) -> CommandHandler | None:
        return self._commands.get(_normalize(name))

    def has(self, name: str) -> bool:
        return _normalize(name) in self._commands

    def names(self) -> list[str]:
        return sorted(self._commands)

    async def execute(self, name: str, ctx: Any, args: str = "") -> None:
        """Run a command. Handler exceptions propagate to the caller."""
        handler = self.get(name)
        if handler is None:
            raise CommandNotFoundError(name)

        start = time.perf_counter()
        result = handler(ctx, args)
        if inspect.isawaitable(result):
            await result
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[commands] Command {_normalize(name)!r} executed in {duration_ms:.0f}ms")

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __repr__(self) -> str:
        return f"CommandRegistry(commands={self.names()})"
