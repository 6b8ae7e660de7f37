"""Stream monitor: keeps the announcement channel in line with Twitch.

Every pass fetches the live streams of the configured category and brings the
channel back into agreement with them:

1. streams whose broadcaster is banned lose their announcement;
2. streams that ended lose their announcement; if it was already gone from
   the channel the stream is soft-banned, so it stays hidden should Twitch
   list it again;
3. cached announcements of live streams that vanished from the channel were
   removed by a moderator, and their stream is soft-banned;
4. the cache is rebuilt from the channel, deleting anything that no longer
   matches a stream that should be shown;
5. every remaining stream gets its announcement edited, or a new one sent.

The monitor is the single writer of its :class:`MonitorState`. Passes run
under a lock because admin commands can trigger one outside the scheduler.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import discord

from streamcord.configuration.app_configuration import AppConfig
from streamcord.datatypes.stream_datatypes import LiveStream, MonitorState, SoftBanList
from streamcord.scheduler.periodic_scheduler import PeriodicScheduler
from streamcord.stream.cache_recovery import delete_messages, recover_cache
from streamcord.stream.message_store import ChannelMessageStore
from streamcord.stream.stream_embed import build_announcement_embed, build_announcement_text
from streamcord.twitch.twitch_api import TwitchApiError, TwitchApiService
from streamcord.util.discord_utils import find_text_channel
from streamcord.util.logger import get_logger

logger = get_logger("stream_monitor")

SOFT_BAN_HISTORY_LIMIT = 200


class StreamMonitorService:
    """Mirror of the live streams of one Twitch category into one Discord channel.

    Args:
        bot: Connected Discord client, used to resolve the announcement channel.
        config: Application configuration (channel, interval, bans, mention role).
        twitch: Live-set provider.
        store: Optional pre-built channel store, resolved from ``bot`` on start otherwise.
    """

    def __init__(
        self,
        bot: Optional[discord.Client],
        config: AppConfig,
        twitch: TwitchApiService,
        *,
        store: Optional[ChannelMessageStore] = None,
    ) -> None:
        self.bot = bot
        self.config = config
        self.twitch = twitch
        self.store = store
        self.state = MonitorState(soft_bans=SoftBanList(config.stream_monitor.soft_ban_grace_passes))
        self._pass_lock = asyncio.Lock()
        self.scheduler = PeriodicScheduler(
            "stream monitor",
            self.tick,
            lambda: self.config.stream_monitor.update_interval_seconds,
        )

    # --------------------------
    # Lifecycle
    # --------------------------
    async def start(self) -> bool:
        """Recover the cache from the channel, then start the periodic passes.

        Returns:
            bool: False when the announcement channel cannot be resolved.
        """
        if self.store is None:
            channel_id = self.config.stream_monitor.channel_id
            channel = find_text_channel(self.bot, channel_id) if self.bot else None
            if channel is None:
                logger.error("[STREAM MONITOR] Announcement channel %s unavailable, monitor not started", channel_id)
                return False
            self.store = ChannelMessageStore(channel, self.bot.user)

        try:
            async with self._pass_lock:
                await self.recover(self.state)
        except discord.HTTPException as exc:
            logger.warning("[STREAM MONITOR] Startup recovery failed, the first pass rebuilds the cache: %s", exc)

        self.scheduler.start()
        return True

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()

    async def recover(self, state: MonitorState) -> None:
        """Replace the cache with what the channel currently shows."""
        messages = await self.store.list_recent(SOFT_BAN_HISTORY_LIMIT)
        if not messages:
            state.cache = {}
            return

        try:
            streams = await self.twitch.get_live_streams()
        except TwitchApiError as exc:
            logger.warning("[STREAM MONITOR] Skipping startup recovery, Twitch unavailable: %s", exc)
            return

        state.previous_streams = list(streams)
        state.cache = await recover_cache(self.store, self._renderable(state, streams), messages)
        logger.info("[STREAM MONITOR] Recovered %d announcements from the channel", len(state.cache))

    # --------------------------
    # Reconciliation
    # --------------------------
    async def tick(self) -> bool:
        """Run one reconciliation pass.

        Returns:
            bool: False when the pass was aborted.
        """
        if self.store is None:
            logger.warning("[STREAM MONITOR] Pass requested before the monitor was started")
            return False
        async with self._pass_lock:
            return await self._reconcile(self.state)

    def _renderable(self, state: MonitorState, streams: Sequence[LiveStream]) -> list[LiveStream]:
        bans = self.config.twitch_user_bans
        return [
            stream
            for stream in streams
            if stream.user_id not in bans and stream.stream_id not in state.soft_bans
        ]

    async def _reconcile(self, state: MonitorState) -> bool:
        try:
            streams = await self.twitch.get_live_streams()
        except TwitchApiError as exc:
            logger.warning("[STREAM MONITOR] Could not fetch live streams, skipping pass: %s", exc)
            return False

        state.previous_streams = list(streams)
        live_ids = {stream.stream_id for stream in streams}
        bans = self.config.twitch_user_bans

        try:
            messages = await self.store.list_recent(SOFT_BAN_HISTORY_LIMIT)
        except discord.HTTPException as exc:
            logger.warning("[STREAM MONITOR] Could not read the announcement channel, skipping pass: %s", exc)
            return False
        existing_ids = {message.id for message in messages}

        # Banned broadcasters and ended streams lose their announcement
        stale_message_ids: list[int] = []
        for stream in streams:
            if stream.user_id in bans and stream.stream_id in state.cache:
                logger.info("[STREAM MONITOR] Removing announcement of banned broadcaster %s", stream.user_name)
                stale_message_ids.append(state.cache.pop(stream.stream_id))
        for stream_id in [stream_id for stream_id in state.cache if stream_id not in live_ids]:
            message_id = state.cache.pop(stream_id)
            if message_id not in existing_ids:
                # Removed before it ended: keep it suppressed if Twitch lists it again
                logger.info("[STREAM MONITOR] Announcement of ended stream %s was deleted, soft banning it", stream_id)
                state.soft_bans.add(stream_id)
            else:
                logger.debug("[STREAM MONITOR] Stream %s ended", stream_id)
            stale_message_ids.append(message_id)
        await delete_messages(self.store, stale_message_ids)

        state.soft_bans.grace_passes = self.config.stream_monitor.soft_ban_grace_passes
        for stream_id in state.soft_bans.expire(live_ids):
            logger.info("[STREAM MONITOR] Lifted soft ban of ended stream %s", stream_id)

        # Announcements that vanished were deleted by a moderator
        for stream_id, message_id in state.cache.items():
            if message_id not in existing_ids:
                logger.info("[STREAM MONITOR] Announcement of stream %s was deleted, soft banning it", stream_id)
                state.soft_bans.add(stream_id)

        deleted_ids = set(stale_message_ids)
        remaining = [message for message in messages if message.id not in deleted_ids]
        to_render = self._renderable(state, streams)
        state.cache = await recover_cache(self.store, to_render, remaining)

        mention_role_id = self.config.stream_monitor.mention_role_id
        for stream in to_render:
            await self._render(state, stream, mention_role_id)

        logger.debug(
            "[STREAM MONITOR] Pass complete: %d live, %d announced, %d soft banned",
            len(streams),
            len(state.cache),
            len(state.soft_bans),
        )
        return True

    async def _render(self, state: MonitorState, stream: LiveStream, mention_role_id: int) -> None:
        icon_url = await self.twitch.get_streamer_icon_url(stream.user_id)
        content = build_announcement_text(stream, mention_role_id)
        embed = build_announcement_embed(stream, icon_url)

        message_id = state.cache.get(stream.stream_id)
        if message_id is None:
            try:
                message = await self.store.send(content, embed)
            except discord.HTTPException as exc:
                logger.warning("[STREAM MONITOR] Failed to announce %s: %s", stream.user_name, exc)
                return
            state.cache[stream.stream_id] = message.id
            logger.info("[STREAM MONITOR] Announced %s (%s)", stream.user_name, stream.stream_id)
            return

        try:
            await self.store.edit(message_id, content, embed)
        except discord.HTTPException as exc:
            logger.warning("[STREAM MONITOR] Failed to update announcement of %s: %s", stream.user_name, exc)

    # --------------------------
    # Lookups
    # --------------------------
    async def get_twitch_id(self, username: str) -> str:
        """Resolve a Twitch user id from an id, or a login / display name.

        Raises
        ------
        StreamerNotFoundError
            When the name is neither live nor known to Twitch.
        """
        username = username.strip()
        if username.isdigit():
            return username

        wanted = username.casefold()
        for stream in self.state.previous_streams:
            if wanted in (stream.user_name.casefold(), stream.user_login.casefold()):
                return stream.user_id

        return await self.twitch.get_streamer_id(username)
