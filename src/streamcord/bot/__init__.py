"""
Discord bot cogs for Streamcord.

- **events_listener.py**: Starts the stream monitor and the restart report on
  the first ``on_ready``, and handles slash command errors (access denied
  answers, admin channel error reports).

- **admin_cmds.py**: Administrator slash commands: ``/forcerestart`` and the
  ``/stream`` group (update, ban, unban, bans, status).
"""
