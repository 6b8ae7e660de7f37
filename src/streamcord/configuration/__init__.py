"""
Configuration management for Streamcord.

- **app_configuration.py**: File-locked YAML loader for global settings (guild,
  admin channel, stream monitor section) that can also persist the Twitch ban
  list edited through admin commands.

- **stream_settings.py**: Typed accessors for the ``stream_monitor`` section:
  announcement channel, poll interval, mention role, game filter, soft-ban
  grace period and banned Twitch user ids.
"""
