"""
Per-message context handed to hooks and command handlers.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from sltbot.bot import Bot
    from sltbot.embed import EmbedBuilder


class Context:
    """One inbound message plus the operations available in reply to it.

    ``server`` is looked up in the background after construction, so it is
    ``None`` at first; ``await ctx.fetch_server()`` waits for it.
    ``raw`` keeps the original envelope for debugging only; ``content``,
    ``owner`` and ``date`` are the normalized copies to rely on.

    Must be created inside a running event loop.
    """

    def __init__(
        self,
        message: dict[str, Any],
        server_id: str,
        bot: "Bot",
        raw: Any = None,
    ) -> None:
        self.content: str = message.get("text", "")
        self.owner: dict[str, Any] = dict(message.get("owner") or {})
        self.date: Any = message.get("date")
        self.server_id = server_id
        self.bot = bot
        self.raw = raw

        self.server: dict[str, Any] | None = None
        self._server_task: asyncio.Task | None = None
        if bot.api is not None:
            self._server_task = asyncio.ensure_future(self._resolve_server())

    @property
    def author_id(self) -> str:
        return str(self.owner.get("id", ""))

    @property
    def author_name(self) -> str:
        return str(self.owner.get("name") or self.author_id)

    async def _resolve_server(self) -> dict[str, Any] | None:
        try:
            self.server = await self.bot.api.get_server(self.server_id)
        except Exception as exc:
            logger.debug(f"[context] Server lookup for [{self.server_id}] failed: {exc}")
        return self.server

    async def fetch_server(self) -> dict[str, Any] | None:
        if self._server_task is None:
            return self.server
        return await asyncio.shield(self._server_task)

    async def reply(self, content: "str | EmbedBuilder") -> None:
        """Send to the server this message came from."""
        await self.bot.send(content, self.server_id)

    def __repr__(self) -> str:
        return (
            f"Context(server_id={self.server_id!r}, author={self.author_id!r}, "
            f"content={self.content[:40]!r})"
        )
