"""
Twitch integration for Streamcord.

- **twitch_api.py**: Helix client returning the live streams of one category,
  broadcaster icons and user id lookups, with app-token handling.
"""

from streamcord.twitch.twitch_api import StreamerNotFoundError, TwitchApiError, TwitchApiService

__all__ = ["StreamerNotFoundError", "TwitchApiError", "TwitchApiService"]
