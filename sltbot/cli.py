"""
sltbot CLI entry point.

Usage:
    sltbot --token TOKEN --bot-id ID     # Connect and open the operator console
    sltbot                               # Credentials from SLTBOT_TOKEN / SLTBOT_BOT_ID or .env
    sltbot --help
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from loguru import logger

from sltbot import __version__


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="sltbot",
        description="sltbot - chat bot client with an operator console",
    )
    parser.add_argument("--token", default="", help="Bot token (default: $SLTBOT_TOKEN)")
    parser.add_argument("--bot-id", default="", help="Bot user id (default: $SLTBOT_BOT_ID)")
    parser.add_argument("--prefix", default="", help="Command prefix (default: !)")
    parser.add_argument(
        "--no-console",
        action="store_true",
        help="Run without the interactive operator console",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level for stderr output (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sltbot {__version__}",
    )

    args = parser.parse_args()

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        level=args.log_level.upper(),
    )

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Bye!")


async def _run(args: argparse.Namespace) -> None:
    from sltbot.bot import Bot
    from sltbot.config import BotConfig, load_credentials

    env_token, env_bot_id = load_credentials()
    token = args.token or env_token
    bot_id = args.bot_id or env_bot_id
    if not token or not bot_id:
        logger.error("Token and bot id are required (--token/--bot-id or SLTBOT_TOKEN/SLTBOT_BOT_ID)")
        sys.exit(1)

    overrides = {"prefix": args.prefix} if args.prefix else {}
    bot = Bot(BotConfig.from_env(**overrides))
    await bot.run(token, bot_id, console=not args.no_console)


if __name__ == "__main__":
    main()
