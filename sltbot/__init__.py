"""sltbot — an async chat bot client with markup formatting and command dispatch."""

__version__ = "0.1.0"

from sltbot.bot import Bot
from sltbot.cache import RequestCache
from sltbot.commands import CommandRegistry
from sltbot.config import BotConfig, load_credentials
from sltbot.connection import Connection, ConnectionState, ReconnectPolicy
from sltbot.context import Context
from sltbot.embed import EmbedBuilder
from sltbot.errors import (
    CommandError,
    CommandNotFoundError,
    ConfigurationError,
    DuplicateError,
    NetworkError,
    NotConnectedError,
    ProtocolError,
    RateLimitError,
    SLTBotError,
)
from sltbot.formatter import format_message

__all__ = [
    # Core
    "Bot", "BotConfig", "Context", "load_credentials",
    # Commands
    "CommandRegistry",
    # Markup
    "format_message", "EmbedBuilder",
    # Transport
    "Connection", "ConnectionState", "ReconnectPolicy", "RequestCache",
    # Errors
    "SLTBotError", "ConfigurationError", "NetworkError", "NotConnectedError",
    "ProtocolError", "CommandError", "CommandNotFoundError", "RateLimitError",
    "DuplicateError",
]
