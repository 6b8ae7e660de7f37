"""
Stream announcements for Streamcord.

- **stream_monitor.py**: The reconciliation engine. On every pass it fetches
  the live streams, removes announcements of banned or ended streams, detects
  announcements a moderator deleted (soft bans), rebuilds its cache from the
  channel and creates or edits one announcement per remaining stream.

- **cache_recovery.py**: Rebuilds the stream id to message id cache by
  matching the channel's bot messages to live streams by display name, and
  deletes the messages nothing matches.

- **message_store.py**: Wrapper over the announcement channel exposing
  list/send/edit/delete for the bot's own messages.

- **stream_embed.py**: Announcement text and embed rendering.
"""
