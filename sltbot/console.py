"""
Operator console — local control shell for a running bot.

Reads stdin lines (in a worker thread so the event loop keeps serving the
sockets) and maps each one onto a Bot method.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from sltbot.bot import Bot

HELP_TEXT = """
Available commands:
  addserver <server_id>        Join a server and connect to it
  set <key> <value>            Change a bot setting
  servers                      List joined servers and their state
  status                       Show connection status
  send <server_id|all> <text>  Send a message
  reconnect <server_id>        Retry the connection to a joined server
  disconnect                   Disconnect from all servers
  poweroff                     Shut the bot down
  help                         Show this message
"""


class OperatorConsole:
    """Interactive shell bound to one Bot.

    Usage::

        console = OperatorConsole(bot)
        await console.run()
    """

    def __init__(self, bot: "Bot", prompt: str = "> ") -> None:
        self.bot = bot
        self.prompt = prompt
        self._running = False

    async def run(self) -> None:
        """Read commands until EOF or ``poweroff``."""
        self._running = True
        logger.info("[console] Type 'help' for a list of commands.")

        loop = asyncio.get_running_loop()
        while self._running:
            line = await loop.run_in_executor(None, self._read_line)
            if line is None:
                break
            await self.execute(line)

        self._running = False

    def _read_line(self) -> str | None:
        """Read a line from stdin (blocking). None on EOF."""
        sys.stdout.write(self.prompt)
        sys.stdout.flush()
        line = sys.stdin.readline()
        return line if line else None

    async def execute(self, line: str) -> bool:
        """Run one console line. Returns False if the command failed."""
        parts = line.strip().split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]

        try:
            if cmd == "addserver":
                await self.bot.join(self._arg(args, 0, "server_id"))
            elif cmd == "set":
                await self.bot.change(self._arg(args, 0, "key"), " ".join(args[1:]))
            elif cmd == "servers":
                logger.info(f"[console] Servers: {self.bot.status()['servers']}")
            elif cmd == "status":
                self._print_status()
            elif cmd == "send":
                await self._send(args)
            elif cmd == "reconnect":
                server_id = self._arg(args, 0, "server_id")
                ok = await self.bot.reconnect(server_id)
                logger.info(f"[console] Reconnect to [{server_id}]: {'ok' if ok else 'failed'}")
            elif cmd == "disconnect":
                await self.bot.disconnect()
            elif cmd == "poweroff":
                self._running = False
                await self.bot.shutdown()
            elif cmd == "help":
                logger.info(HELP_TEXT)
            else:
                logger.warning(f"[console] Unknown command: {cmd}")
                return False
        except Exception as exc:
            logger.error(f"[console] {cmd} failed: {exc}")
            return False
        return True

    async def _send(self, args: list[str]) -> None:
        target = self._arg(args, 0, "server_id|all")
        text = " ".join(args[1:])
        if target == "all":
            results = await self.bot.broadcast(text)
            sent = sum(results.values())
            logger.info(f"[console] Sent to {sent}/{len(results)} server(s)")
        else:
            await self.bot.send(text, target)
            logger.info(f"[console] Sent to [{target}]")

    def _print_status(self) -> None:
        status = self.bot.status()
        logger.info("[console] Bot status:")
        logger.info(f"- Token: {status['token']}")
        logger.info(f"- Bot ID: {status['bot_id']}")
        logger.info(f"- Connected servers: {status['connected']}/{len(status['servers'])}")
        logger.info(f"- Commands: {', '.join(status['commands']) or '(none)'}")

    @staticmethod
    def _arg(args: list[str], index: int, name: str) -> str:
        if len(args) <= index:
            raise ValueError(f"missing argument <{name}>")
        return args[index]
