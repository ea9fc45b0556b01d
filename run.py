"""
sltbot — production entry point.

Reads config from environment variables (.env file or system env).
"""

import asyncio
import os
import random
import sys
from pathlib import Path

from dotenv import load_dotenv  # pip install python-dotenv
from loguru import logger

# Load .env from current directory or parent
load_dotenv()


def _require(key: str) -> str:
    val = os.getenv(key, "").strip()
    if not val:
        print(f"ERROR: {key} is not set. Set it in the environment or a .env file.")
        sys.exit(1)
    return val


async def main() -> None:
    # ----------------------------------------------------------------
    # Config from env
    # ----------------------------------------------------------------
    token = _require("SLTBOT_TOKEN")
    bot_id = _require("SLTBOT_BOT_ID")
    alert_server = os.getenv("SLTBOT_ALERT_SERVER", "")

    from sltbot import Bot, BotConfig, EmbedBuilder

    bot: Bot

    async def on_error(error: BaseException, location: str) -> None:
        if alert_server and bot.is_connected(alert_server):
            embed = EmbedBuilder("error").set_title(location).set_description(str(error))
            try:
                await bot.send(embed, alert_server)
            except Exception as exc:
                logger.warning(f"Alert not delivered: {exc}")

    bot = Bot(BotConfig.from_env(on_error=on_error))

    # ----------------------------------------------------------------
    # Commands
    # ----------------------------------------------------------------
    @bot.command()
    async def ping(ctx, args):
        await ctx.reply("embed:success:pong")

    @bot.command()
    async def echo(ctx, args):
        await ctx.reply(args or "italic:nothing to echo")

    @bot.command()
    async def roll(ctx, args):
        sides = int(args) if args.isdigit() and int(args) > 1 else 6
        await ctx.reply(f"strong:{ctx.author_name} rolled {random.randint(1, sides)} (d{sides})")

    @bot.command()
    async def help(ctx, args):
        embed = EmbedBuilder("info").set_title("Commands")
        for name in bot.commands.names():
            embed.add_field(f"{bot.config.prefix}{name}", "", inline=True)
        await ctx.reply(embed)

    @bot.on("ready")
    def ready(server_ids):
        logger.info(f"sltbot ready on {len(server_ids)} server(s)")

    logger.info("sltbot starting...")
    await bot.run(token, bot_id, console=os.getenv("SLTBOT_CONSOLE", "true").lower() != "false")


if __name__ == "__main__":
    # Configure loguru
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        level=os.getenv("LOG_LEVEL", "INFO"),
    )
    logger.add(
        Path("~/.sltbot/sltbot.log").expanduser(),
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
    )

    asyncio.run(main())
