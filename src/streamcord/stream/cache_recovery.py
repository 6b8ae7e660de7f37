"""Rebuild the stream id to message id cache from the announcement channel.

Announcements carry no stream id, so a message is matched back to a live
stream by the author name of its embed. A broadcaster who renames mid-stream,
or two broadcasters sharing a display name, are therefore not told apart.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Optional, Sequence

import discord

from streamcord.datatypes.stream_datatypes import LiveStream
from streamcord.stream.message_store import ChannelMessageStore
from streamcord.stream.stream_embed import embed_author_name
from streamcord.util.logger import get_logger

logger = get_logger("cache_recovery")

RECOVERY_HISTORY_LIMIT = 100


async def delete_messages(store: ChannelMessageStore, message_ids: Iterable[int]) -> int:
    """Delete messages concurrently; a failure does not stop the others.

    Returns:
        int: Number of deletions that did not raise.
    """
    message_ids = list(message_ids)
    if not message_ids:
        return 0

    results = await asyncio.gather(
        *(store.delete(message_id) for message_id in message_ids),
        return_exceptions=True,
    )
    succeeded = 0
    for message_id, result in zip(message_ids, results):
        if isinstance(result, BaseException):
            logger.warning("[CACHE RECOVERY] Failed to delete message %s: %s", message_id, result)
        else:
            succeeded += 1
    return succeeded


async def recover_cache(
    store: ChannelMessageStore,
    streams: Sequence[LiveStream],
    messages: Optional[Sequence[discord.Message]] = None,
) -> Dict[str, int]:
    """Map live streams to the bot messages announcing them and delete the rest.

    Args:
        store: Announcement channel store.
        streams: The current live set.
        messages: The bot's recent messages. Fetched from the store when omitted.

    Returns:
        Dict[str, int]: New cache of stream id to message id.
    """
    if messages is None:
        messages = await store.list_recent(RECOVERY_HISTORY_LIMIT)

    by_name: Dict[str, LiveStream] = {}
    for stream in streams:
        by_name.setdefault(stream.user_name, stream)

    cache: Dict[str, int] = {}
    stale: list[int] = []
    for message in messages:
        author_name = embed_author_name(message)
        stream = by_name.get(author_name) if author_name else None
        if stream is None or stream.stream_id in cache:
            # Ended, malformed, or a duplicate announcement of the same stream
            stale.append(message.id)
            continue
        cache[stream.stream_id] = message.id

    deleted = await delete_messages(store, stale)
    logger.debug(
        "[CACHE RECOVERY] Recovered %d announcements, deleted %d of %d stale messages",
        len(cache),
        deleted,
        len(stale),
    )
    return cache
