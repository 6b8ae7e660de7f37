"""Rendering of stream announcements."""

from __future__ import annotations

import time
from typing import Optional

import discord

from streamcord.datatypes.stream_datatypes import LiveStream

THUMBNAIL_WIDTH = 1280
THUMBNAIL_HEIGHT = 720


def thumbnail_url(stream: LiveStream, token: Optional[int] = None) -> str:
    """Fill the thumbnail template and append a token so Discord does not serve a stale preview."""
    if token is None:
        token = int(time.time() * 1000)
    url = stream.thumbnail_url.replace("{width}", str(THUMBNAIL_WIDTH)).replace("{height}", str(THUMBNAIL_HEIGHT))
    return f"{url}?q={token}"


def build_announcement_text(stream: LiveStream, mention_role_id: int) -> str:
    text = f"{discord.utils.escape_markdown(stream.user_name)} has gone live!"
    if mention_role_id:
        text += f" <@&{mention_role_id}>"
    return text


def build_announcement_embed(
    stream: LiveStream,
    icon_url: Optional[str] = None,
    *,
    token: Optional[int] = None,
) -> discord.Embed:
    """Build the embed announcing a live stream.

    The author name is the raw display name: cache recovery matches it back
    against the live set after a restart.
    """
    embed = discord.Embed(
        title=discord.utils.escape_markdown(stream.title),
        description=f"{stream.viewer_count} viewers",
        url=stream.channel_url,
        color=discord.Color.purple(),
        timestamp=discord.utils.utcnow(),
    )
    if icon_url:
        embed.set_author(name=stream.user_name, url=stream.channel_url, icon_url=icon_url)
    else:
        embed.set_author(name=stream.user_name, url=stream.channel_url)
    embed.set_image(url=thumbnail_url(stream, token))
    return embed


def embed_author_name(message: discord.Message) -> Optional[str]:
    """Return the author name of a message's single embed, None if it has not exactly one."""
    embeds = getattr(message, "embeds", None) or []
    if len(embeds) != 1:
        return None
    author = getattr(embeds[0], "author", None)
    name = getattr(author, "name", None)
    return name if isinstance(name, str) and name else None
