"""
Embed showcase — prefix shortcuts and the EmbedBuilder side by side.

Run:
    export SLTBOT_TOKEN=...
    export SLTBOT_BOT_ID=...
    python examples/embed_showcase.py

Then type ``!demo`` in any server the bot has joined.
"""

import asyncio
import os

from sltbot import Bot, BotConfig, EmbedBuilder


async def main() -> None:
    bot = Bot(BotConfig(prefix="!", rate_limit=1.0))

    @bot.command()
    async def demo(ctx, args):
        # Prefix shortcuts: the formatter turns these into markup
        await ctx.reply("embed:info:strong:Shortcuts\nitalic:one per line\ncode:embed:info:...")
        await asyncio.sleep(1.1)

        # The same idea, built explicitly
        embed = (
            EmbedBuilder("success")
            .set_author(ctx.author_name)
            .set_title("Builder")
            .set_description("Fields, code and an optional attachment")
            .add_field("Server", ctx.server_id, inline=True)
            .add_field("Prefix", bot.config.prefix, inline=True, color="#2ecc71")
            .code("await ctx.reply(embed)", language="python")
        )
        await ctx.reply(embed)

    await bot.run(os.environ["SLTBOT_TOKEN"], os.environ["SLTBOT_BOT_ID"])


if __name__ == "__main__":
    asyncio.run(main())
