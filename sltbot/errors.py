"""
Error taxonomy.

Every failure the bot reports is one of these. Which ones propagate and
which ones are only logged is decided at the dispatch boundary in
``sltbot.bot``; see the docstrings below.
"""

from __future__ import annotations


class SLTBotError(Exception):
    """Base class for all sltbot errors."""


class ConfigurationError(SLTBotError):
    """Invalid configuration value. Corrected to a default, never fatal."""


class NetworkError(SLTBotError):
    """HTTP or socket failure."""


class NotConnectedError(NetworkError):
    """Send attempted to a server without a live connection."""

    def __init__(self, server_id: str) -> None:
        super().__init__(f"Not connected to server {server_id!r}")
        self.server_id = server_id


class ProtocolError(SLTBotError):
    """Malformed inbound envelope. Logged and dropped."""


class CommandError(SLTBotError):
    """A command could not be run."""


class CommandNotFoundError(CommandError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name


class RateLimitError(SLTBotError):
    """Send attempted before the per-server interval elapsed."""

    def __init__(self, server_id: str, retry_after: float) -> None:
        super().__init__(
            f"Rate limited on server {server_id!r}, retry in {retry_after:.2f}s"
        )
        self.server_id = server_id
        self.retry_after = retry_after


class DuplicateError(SLTBotError):
    """Server already joined."""
