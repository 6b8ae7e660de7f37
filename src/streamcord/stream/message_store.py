"""Channel-backed store of the rendered stream announcements."""

from __future__ import annotations

from typing import Optional

import discord

from streamcord.util.discord_utils import fetch_own_history
from streamcord.util.logger import get_logger

logger = get_logger("message_store")


class ChannelMessageStore:
    """Thin wrapper over one text channel, limited to the bot's own messages.

    Args:
        channel: Announcement channel.
        bot_user: The connected bot user, used to keep only self-authored messages.
    """

    def __init__(self, channel: discord.TextChannel, bot_user: Optional[discord.abc.User]) -> None:
        self.channel = channel
        self.bot_user = bot_user

    async def list_recent(self, limit: int = 100) -> list[discord.Message]:
        """Return the bot's messages among the ``limit`` most recent ones, newest first."""
        return await fetch_own_history(self.channel, self.bot_user, limit=limit)

    async def send(self, content: str, embed: discord.Embed) -> discord.Message:
        return await self.channel.send(content=content, embed=embed)

    async def edit(self, message_id: int, content: str, embed: discord.Embed) -> None:
        await self.channel.get_partial_message(message_id).edit(content=content, embed=embed)

    async def delete(self, message_id: int) -> bool:
        """Delete a message by id.

        Returns:
            bool: False when the message was already gone, True otherwise.
        """
        try:
            await self.channel.get_partial_message(message_id).delete()
        except discord.NotFound:
            logger.debug("[MESSAGE STORE] Message %s was already deleted", message_id)
            return False
        return True
