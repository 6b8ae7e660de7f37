"""Lifecycle controls for the running Discord bot."""

from __future__ import annotations

import asyncio

import discord

from streamcord.util.logger import get_logger

logger = get_logger("runtime_control")

RESTART_EXIT_CODE = 42


class RuntimeControl:
    """Restart and shutdown requests raised by commands, read by ``main``."""

    def __init__(self) -> None:
        self.shutdown_event = asyncio.Event()
        self.restart_event = asyncio.Event()
        self._bot: discord.Bot | None = None

    def set_bot(self, bot: discord.Bot | None) -> None:
        self._bot = bot

    @property
    def bot(self) -> discord.Bot | None:  # pragma: no cover - trivial getter
        return self._bot

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()

    def is_restart_requested(self) -> bool:
        return self.restart_event.is_set()

    async def request_restart(self) -> None:
        """Flag a restart and close the bot so ``main`` can re-exec the process."""
        self.restart_event.set()
        await self.request_shutdown()

    async def request_shutdown(self) -> None:
        self.shutdown_event.set()
        await close_bot_instance(self._bot, log_close=True)


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Close the Discord bot instance if it is active."""
    if bot is None or bot.is_closed():
        return

    try:
        await bot.close()
        if log_close:
            logger.info("Discord bot connection closed.")
    except Exception as exc:  # pragma: no cover - defensive logging
        logger.exception("Error while closing Discord bot: %s", exc)
