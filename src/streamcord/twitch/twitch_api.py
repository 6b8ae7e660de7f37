"""Twitch Helix client used as the live-stream source of the stream monitor.

All calls go through one :class:`aiohttp.ClientSession` owned by
:class:`TwitchApiService`. Authentication uses an app access token from the
client-credentials flow; the token is dropped and requested again whenever
Helix answers 401.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from streamcord.datatypes.stream_datatypes import LiveStream
from streamcord.util.logger import get_logger

logger = get_logger("twitch_api")

HELIX_URL = "https://api.twitch.tv/helix"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
PAGE_SIZE = 100
MAX_PAGES = 10
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=15)


class TwitchApiError(Exception):
    """Raised when Twitch cannot be reached or answers with an error."""


class StreamerNotFoundError(TwitchApiError):
    """Raised when a Twitch user lookup has no result."""


class TwitchApiService:
    """Live-set provider backed by the Twitch Helix API.

    Args:
        client_id: Twitch application client id.
        client_secret: Twitch application client secret.
        game_name: Category whose live streams :meth:`get_live_streams` returns.
        session: Optional session to use instead of creating one lazily.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        game_name: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.game_name = game_name
        self._session = session
        self._owns_session = session is None
        self._access_token: Optional[str] = None
        self._token_lock = asyncio.Lock()
        self._game_id: Optional[str] = None
        self._icon_cache: Dict[str, str] = {}

    # --------------------------
    # HTTP plumbing
    # --------------------------
    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=REQUEST_TIMEOUT)
            self._owns_session = True
        return self._session

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            if self._access_token:
                return self._access_token
            params = {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            }
            try:
                async with self._get_session().post(TOKEN_URL, params=params) as resp:
                    if resp.status != 200:
                        raise TwitchApiError(f"Token request failed with HTTP {resp.status}")
                    payload = await resp.json()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                raise TwitchApiError(f"Token request failed: {exc}") from exc

            token = payload.get("access_token")
            if not token:
                raise TwitchApiError("Token response did not contain an access token")
            self._access_token = str(token)
            logger.debug("[TWITCH API] Obtained a new app access token")
            return self._access_token

    async def _call_api(self, endpoint: str, params: Any) -> Dict[str, Any]:
        """GET a Helix endpoint and return the decoded JSON body.

        Retries once with a fresh token when the current one is rejected.

        Raises
        ------
        TwitchApiError
            On connection problems, timeouts, non-200 answers or invalid JSON.
        """
        for attempt in range(2):
            token = await self._get_access_token()
            headers = {"Client-ID": self.client_id, "Authorization": f"Bearer {token}"}
            try:
                async with self._get_session().get(f"{HELIX_URL}/{endpoint}", params=params, headers=headers) as resp:
                    if resp.status == 401 and attempt == 0:
                        logger.info("[TWITCH API] Access token rejected, requesting a new one")
                        self._access_token = None
                        continue
                    if resp.status != 200:
                        raise TwitchApiError(f"GET {endpoint} failed with HTTP {resp.status}")
                    payload = await resp.json()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                raise TwitchApiError(f"GET {endpoint} failed: {exc}") from exc
            except ValueError as exc:
                raise TwitchApiError(f"GET {endpoint} returned invalid JSON") from exc

            if not isinstance(payload, dict):
                raise TwitchApiError(f"GET {endpoint} returned an unexpected payload")
            return payload
        raise TwitchApiError(f"GET {endpoint} was not authorized")

    # --------------------------
    # Public API
    # --------------------------
    async def get_game_id(self) -> str:
        """Resolve the configured game name to its Twitch category id (cached)."""
        if self._game_id:
            return self._game_id
        payload = await self._call_api("games", {"name": self.game_name})
        data = payload.get("data") or []
        if not data:
            raise TwitchApiError(f"Twitch has no category named {self.game_name!r}")
        self._game_id = str(data[0]["id"])
        return self._game_id

    async def get_live_streams(self) -> List[LiveStream]:
        """Return every live stream in the configured category."""
        game_id = await self.get_game_id()
        streams: List[LiveStream] = []
        cursor: Optional[str] = None

        for _ in range(MAX_PAGES):
            params = [("game_id", game_id), ("first", str(PAGE_SIZE))]
            if cursor:
                params.append(("after", cursor))
            payload = await self._call_api("streams", params)
            for record in payload.get("data") or []:
                try:
                    streams.append(LiveStream.from_api(record))
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning("[TWITCH API] Skipping malformed stream record: %s", exc)
            cursor = (payload.get("pagination") or {}).get("cursor")
            if not cursor:
                break

        logger.debug("[TWITCH API] %d live streams for %s", len(streams), self.game_name)
        return streams

    async def get_streamer_icon_url(self, user_id: str) -> Optional[str]:
        """Return the profile image of a broadcaster, or None when it cannot be fetched."""
        if user_id in self._icon_cache:
            return self._icon_cache[user_id]
        try:
            payload = await self._call_api("users", {"id": user_id})
        except TwitchApiError as exc:
            logger.warning("[TWITCH API] Could not fetch icon for user %s: %s", user_id, exc)
            return None
        data = payload.get("data") or []
        if not data:
            return None
        icon_url = data[0].get("profile_image_url")
        if icon_url:
            self._icon_cache[user_id] = str(icon_url)
        return icon_url

    async def get_streamer_id(self, username: str) -> str:
        """Look up the Twitch user id of a login name.

        Raises
        ------
        StreamerNotFoundError
            When no Twitch user has that login.
        """
        payload = await self._call_api("users", {"login": username.strip().lower()})
        data = payload.get("data") or []
        if not data:
            raise StreamerNotFoundError(f"No Twitch user named {username!r}")
        return str(data[0]["id"])

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
