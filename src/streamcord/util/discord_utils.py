"""
discord_utils.py
================

Low-level Discord helpers for Streamcord.

Stateless functions shared by the stream monitor, the restart correlator and
the command cogs. Nothing in here keeps state between calls.
"""

from __future__ import annotations

from typing import Iterable, Optional

import discord

from streamcord.util.logger import get_logger

logger = get_logger("discord_utils")


def is_from_self(message: discord.Message, bot_user: Optional[discord.abc.User]) -> bool:
    """
    Check whether a message was authored by the bot itself.

    Args:
        message (discord.Message): The message to inspect.
        bot_user (discord.abc.User | None): The connected bot user, ``None`` before login.

    Returns:
        bool: True if the author id matches the bot user id.
    """
    if bot_user is None:
        return False
    author = getattr(message, "author", None)
    return author is not None and author.id == bot_user.id


def filter_from_self(messages: Iterable[discord.Message], bot_user: Optional[discord.abc.User]) -> list[discord.Message]:
    """Keep only the messages authored by ``bot_user``, preserving order."""
    return [message for message in messages if is_from_self(message, bot_user)]


async def fetch_own_history(
    channel: discord.abc.Messageable,
    bot_user: Optional[discord.abc.User],
    *,
    limit: int,
) -> list[discord.Message]:
    """
    Fetch the most recent messages of a channel and keep the bot's own.

    Messages are returned newest first, like ``channel.history``. ``limit``
    bounds the number of messages read, not the number returned.
    """
    history = [message async for message in channel.history(limit=limit)]
    return filter_from_self(history, bot_user)


def find_text_channel(bot: discord.Client, channel_id: int) -> Optional[discord.TextChannel]:
    """
    Resolve a text channel from the bot's cache.

    Returns:
        discord.TextChannel | None: The channel, or None when it is unknown or not a text channel.
    """
    if not channel_id:
        return None
    channel = bot.get_channel(channel_id)
    if channel is None:
        logger.warning("Channel %s is not visible to the bot", channel_id)
        return None
    if not isinstance(channel, discord.TextChannel):
        logger.warning("Channel %s is not a text channel (%s)", channel_id, type(channel).__name__)
        return None
    return channel


def describe_user(user: Optional[discord.abc.User]) -> str:
    """Render a user for log lines and admin reports."""
    if user is None:
        return "<unknown user>"
    discriminator = getattr(user, "discriminator", None)
    if discriminator and discriminator != "0":
        return f"{user.name}#{discriminator}"
    return str(user.name)
