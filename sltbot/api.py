"""
REST client for the chat platform.

Every request carries the ``token`` / ``op`` cookie pair built from the
operator's credentials. Non-2xx responses and transport failures are raised
as ``NetworkError``; user and server lookups go through the request cache.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from loguru import logger

from sltbot.cache import DEFAULT_TTL, RequestCache
from sltbot.config import BASE_URL
from sltbot.errors import NetworkError


class SLTChatAPI:
    """Async REST client bound to one bot identity."""

    def __init__(
        self,
        token: str,
        bot_id: str,
        base_url: str = BASE_URL,
        cache_ttl: float = DEFAULT_TTL,
        timeout: float = 30.0,
    ) -> None:
        self.token = token
        self.bot_id = bot_id
        self.base_url = base_url.rstrip("/")
        self.cache = RequestCache(lambda url: self.get_json(url), ttl=cache_ttl)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def headers(self) -> dict[str, str]:
        return {"Cookie": f"token={self.token}; op={self.bot_id}"}

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self.headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Raw calls
    # ------------------------------------------------------------------

    async def get_json(self, url: str) -> Any:
        try:
            async with self._get_session().get(url) as resp:
                if resp.status >= 400:
                    raise NetworkError(f"GET {url} failed: HTTP {resp.status}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(f"GET {url} failed: {exc}") from exc

    async def post_form(self, path: str, data: dict[str, str]) -> None:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().post(url, data=data) as resp:
                if resp.status >= 400:
                    raise NetworkError(f"POST {url} failed: HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(f"POST {url} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        return await self.cache.fetch(f"{self.base_url}/api/user/{user_id}/")

    async def get_server(self, server_id: str) -> dict[str, Any] | None:
        return await self.cache.fetch(f"{self.base_url}/api/server/{server_id}/")

    async def change(self, key: str, value: str) -> None:
        await self.post_form("/api/change", {"change_key": key, "change_value": value})
        logger.info(f"[api] Changed key [{key}] -> [{value}]")

    async def join_server(self, server_id: str) -> None:
        await self.post_form("/api/new_server", {"server_id": server_id})
        logger.info(f"[api] Joined server [{server_id}]")

    def __repr__(self) -> str:
        return f"SLTChatAPI(bot_id={self.bot_id!r}, base_url={self.base_url!r})"
