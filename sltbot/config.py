"""
Bot configuration.

Bad values never stop the bot: they are reported as ``ConfigurationError``
warnings and replaced with the defaults below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable, Optional, Union

from dotenv import find_dotenv, load_dotenv
from loguru import logger

from sltbot.errors import ConfigurationError

BASE_URL = "https://slchat.alwaysdata.net"

OnStart = Callable[[], Union[Awaitable[None], None]]
OnError = Callable[[BaseException, str], Union[Awaitable[None], None]]
OnMessage = Callable[[Any], Union[Awaitable[None], None]]


@dataclass
class BotConfig:
    """Bot configuration."""

    # Commands
    prefix: str = "!"
    reply_on_error: bool = True         # Echo "Error: ..." back to the sender

    # Outbound
    max_length: int = 2000              # Characters kept by the formatter
    rate_limit: float = 1.0             # Min seconds between sends, per server

    # Transport
    base_url: str = BASE_URL
    reconnect_attempts: int = 5
    reconnect_delay: float = 1.0        # Doubled on every attempt

    # Lookups
    cache_ttl: float = 30 * 60.0
    verify_senders: bool = True         # Cached user lookup to skip other bots

    # Hooks
    on_start: Optional[OnStart] = None
    on_error: Optional[OnError] = None
    on_message: Optional[OnMessage] = None

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str) or not self.prefix or self.prefix != self.prefix.strip():
            self._fallback("prefix", "must be a non-empty string without surrounding whitespace")
        if not isinstance(self.max_length, int) or self.max_length <= 0:
            self._fallback("max_length", "must be a positive integer")
        if not isinstance(self.rate_limit, (int, float)) or self.rate_limit < 0:
            self._fallback("rate_limit", "must be >= 0")
        if not isinstance(self.reconnect_attempts, int) or self.reconnect_attempts < 0:
            self._fallback("reconnect_attempts", "must be >= 0")
        if not isinstance(self.reconnect_delay, (int, float)) or self.reconnect_delay <= 0:
            self._fallback("reconnect_delay", "must be > 0")
        if not isinstance(self.cache_ttl, (int, float)) or self.cache_ttl <= 0:
            self._fallback("cache_ttl", "must be > 0")
        if not isinstance(self.base_url, str) or not self.base_url.strip("/ "):
            self._fallback("base_url", "must be a non-empty URL string")
        self.base_url = self.base_url.strip().rstrip("/")

    def _fallback(self, name: str, reason: str) -> None:
        default = next(f.default for f in fields(self) if f.name == name)
        error = ConfigurationError(f"{name}={getattr(self, name)!r} {reason}; using {default!r}")
        logger.warning(f"[config] {error}")
        setattr(self, name, default)

    @classmethod
    def from_env(cls, **overrides: Any) -> "BotConfig":
        """Build a config from ``SLTBOT_*`` environment variables.

        Unparseable numbers are left to ``__post_init__`` to correct.
        """
        load_dotenv(find_dotenv(usecwd=True))
        values: dict[str, Any] = {}
        env = {
            "prefix": ("SLTBOT_PREFIX", str),
            "max_length": ("SLTBOT_MAX_LENGTH", int),
            "rate_limit": ("SLTBOT_RATE_LIMIT", float),
            "base_url": ("SLTBOT_BASE_URL", str),
            "reconnect_attempts": ("SLTBOT_RECONNECT_ATTEMPTS", int),
            "reconnect_delay": ("SLTBOT_RECONNECT_DELAY", float),
            "cache_ttl": ("SLTBOT_CACHE_TTL", float),
        }
        for name, (var, cast) in env.items():
            raw = os.getenv(var, "").strip()
            if not raw:
                continue
            try:
                values[name] = cast(raw)
            except ValueError:
                values[name] = raw

        reply = os.getenv("SLTBOT_REPLY_ON_ERROR", "").strip().lower()
        if reply:
            values["reply_on_error"] = reply != "false"

        values.update(overrides)
        return cls(**values)


def load_credentials() -> tuple[str, str]:
    """Return ``(token, bot_id)`` from the environment or a ``.env`` file."""
    load_dotenv(find_dotenv(usecwd=True))
    return os.getenv("SLTBOT_TOKEN", "").strip(), os.getenv("SLTBOT_BOT_ID", "").strip()
