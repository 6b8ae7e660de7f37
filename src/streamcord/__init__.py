"""
Streamcord - Live stream announcements for Discord

Streamcord keeps an announcement channel in sync with the Twitch streams of
one game: one message per live stream, edited as viewer counts and titles
change, and deleted when the stream ends.

Core Components:

- **Stream Monitor**: Periodic reconciliation of the channel against the live
  set, with cache recovery from the channel after a restart
- **Bans**: Configured Twitch user bans, plus soft bans inferred when a
  moderator deletes an announcement by hand
- **Restart Report**: After ``/forcerestart``, replies in the admin channel
  with the time the restart took
- **Admin Commands**: Restart, manual update, and ban list management

Usage:
    from streamcord.main import main
    main()
"""
