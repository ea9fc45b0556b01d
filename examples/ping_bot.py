"""
Ping bot — the simplest sltbot example.

Run:
    export SLTBOT_TOKEN=...
    export SLTBOT_BOT_ID=...
    python examples/ping_bot.py
"""

import asyncio
import os

from sltbot import Bot, BotConfig


async def main() -> None:
    # 1. Bot
    bot = Bot(BotConfig(prefix="!"))

    # 2. Commands
    @bot.command()
    async def ping(ctx, args):
        await ctx.reply("pong")

    @bot.command("say")
    async def say(ctx, args):
        await ctx.reply(args or "italic:say what?")

    # 3. Every message, command or not
    @bot.on("message")
    def log_message(ctx):
        print(f"[{ctx.server_id}] {ctx.author_name}: {ctx.content}")

    # 4. Run until Ctrl+C
    await bot.run(os.environ["SLTBOT_TOKEN"], os.environ["SLTBOT_BOT_ID"])


if __name__ == "__main__":
    asyncio.run(main())
