"""
Time-bounded memoization of idempotent GETs.

- A miss stores the *pending* task, so concurrent callers for the same URL
  share one request.
- Failures resolve to ``None`` and that ``None`` is cached for the TTL like
  any other value; callers do not trigger a retry loop.
- Expiry is checked lazily on read. ``clear()`` drops everything.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

Fetcher = Callable[[str], Awaitable[Any]]

DEFAULT_TTL = 30 * 60.0


@dataclass
class CacheEntry:
    key: str
    value: "asyncio.Task[Any]"
    expiry: float


class RequestCache:
    """URL-keyed cache shared by every context of one bot."""

    def __init__(
        self,
        fetcher: Fetcher,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self.ttl = ttl
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}

    async def fetch(self, url: str) -> Any:
        """Return the cached body for ``url``, fetching it on a miss."""
        entry = self._store.get(url)
        if entry is not None and entry.expiry <= self._clock():
            logger.debug(f"[cache] Expired: {url}")
            del self._store[url]
            entry = None

        if entry is None:
            logger.debug(f"[cache] Caching API call: {url}")
            entry = CacheEntry(
                key=url,
                value=asyncio.ensure_future(self._load(url)),
                expiry=self._clock() + self.ttl,
            )
            self._store[url] = entry

        # shield: one caller being cancelled must not cancel the shared task
        return await asyncio.shield(entry.value)

    async def _load(self, url: str) -> Any:
        try:
            return await self._fetcher(url)
        except Exception as exc:
            logger.warning(f"[cache] Fetch failed for {url}: {exc}")
            return None

    def invalidate(self, url: str) -> None:
        self._store.pop(url, None)

    def clear(self) -> None:
        """Drop every entry regardless of expiry."""
        logger.debug(f"[cache] Clearing {len(self._store)} entries")
        self._store.clear()

    def __contains__(self, url: str) -> bool:
        entry = self._store.get(url)
        return entry is not None and entry.expiry > self._clock()

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"RequestCache(entries={len(self._store)}, ttl={self.ttl})"
