"""
Pytest configuration and fixtures for Streamcord tests.
"""

import sys
from pathlib import Path

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Set
from unittest.mock import AsyncMock

import discord
import pytest
import yaml

from streamcord.configuration.app_configuration import AppConfig
from streamcord.datatypes.stream_datatypes import LiveStream
from streamcord.twitch.twitch_api import StreamerNotFoundError, TwitchApiError

BOT_USER = SimpleNamespace(id=999, name="Streamcord", discriminator="0")
OTHER_USER = SimpleNamespace(id=5, name="someone", discriminator="0")


def http_error(cls=discord.HTTPException, status: int = 500, text: str = "boom"):
    """Build a discord HTTP exception without a real response object."""
    return cls(SimpleNamespace(status=status, reason=text), text)


def make_stream(stream_id: str, user_id: str, user_name: str, viewers: int = 10, title: str = "Surfing") -> LiveStream:
    return LiveStream(
        stream_id=stream_id,
        user_id=user_id,
        user_name=user_name,
        user_login=user_name.lower(),
        title=title,
        viewer_count=viewers,
        thumbnail_url=f"https://static-cdn.jtvnw.net/previews-ttv/live_user_{user_name.lower()}-{{width}}x{{height}}.jpg",
    )


def make_embed(author_name: Optional[str]) -> discord.Embed:
    embed = discord.Embed(title="stream")
    if author_name:
        embed.set_author(name=author_name)
    return embed


class FakeMessage:
    def __init__(
        self,
        message_id: int,
        *,
        embeds: Optional[List[discord.Embed]] = None,
        author: Any = BOT_USER,
        content: str = "",
        reference: Any = None,
        interaction: Any = None,
        created_at: Optional[datetime.datetime] = None,
        channel: Any = None,
    ) -> None:
        self.id = message_id
        self.embeds = embeds or []
        self.author = author
        self.content = content
        self.reference = reference
        self.interaction = interaction
        self.created_at = created_at or datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        self.channel = channel
        self.reply = AsyncMock()


class FakeStore:
    """In-memory stand-in for ChannelMessageStore that records every operation."""

    def __init__(self) -> None:
        self.messages: Dict[int, FakeMessage] = {}
        self.next_id = 1000
        self.sent: List[int] = []
        self.edited: List[int] = []
        self.deleted: List[int] = []
        self.list_calls = 0
        self.fail_edit: Set[int] = set()
        self.fail_delete: Set[int] = set()
        self.fail_send = False

    def add_message(self, embeds: List[discord.Embed], content: str = "") -> FakeMessage:
        self.next_id += 1
        message = FakeMessage(self.next_id, embeds=embeds, content=content)
        self.messages[message.id] = message
        return message

    def remove_externally(self, message_id: int) -> None:
        del self.messages[message_id]

    async def list_recent(self, limit: int = 100) -> List[FakeMessage]:
        self.list_calls += 1
        return list(reversed(list(self.messages.values())))[:limit]

    async def send(self, content: str, embed: discord.Embed) -> FakeMessage:
        if self.fail_send:
            raise http_error()
        message = self.add_message([embed], content)
        self.sent.append(message.id)
        return message

    async def edit(self, message_id: int, content: str, embed: discord.Embed) -> None:
        if message_id in self.fail_edit:
            raise http_error()
        if message_id not in self.messages:
            raise http_error(discord.NotFound, 404, "Unknown Message")
        self.messages[message_id].embeds = [embed]
        self.messages[message_id].content = content
        self.edited.append(message_id)

    async def delete(self, message_id: int) -> bool:
        self.deleted.append(message_id)
        if message_id in self.fail_delete:
            raise http_error()
        return self.messages.pop(message_id, None) is not None

    @property
    def operation_count(self) -> int:
        return len(self.sent) + len(self.edited) + len(self.deleted)


class FakeTwitch:
    def __init__(self, streams: Optional[List[LiveStream]] = None) -> None:
        self.streams: List[LiveStream] = list(streams or [])
        self.users: Dict[str, str] = {}
        self.fail = False
        self.fetches = 0

    async def get_live_streams(self) -> List[LiveStream]:
        self.fetches += 1
        if self.fail:
            raise TwitchApiError("Twitch is down")
        return list(self.streams)

    async def get_streamer_icon_url(self, user_id: str) -> str:
        return f"https://static-cdn.jtvnw.net/user-{user_id}.png"

    async def get_streamer_id(self, username: str) -> str:
        try:
            return self.users[username.lower()]
        except KeyError:
            raise StreamerNotFoundError(f"No Twitch user named {username!r}") from None

    async def close(self) -> None:
        pass


class FakeChannel:
    """Text channel whose history is a fixed list, newest first."""

    def __init__(self, messages: Optional[List[FakeMessage]] = None) -> None:
        self.messages: List[FakeMessage] = list(messages or [])
        self.send = AsyncMock()
        for message in self.messages:
            message.channel = self

    def history(self, limit: int = 100):
        async def iterate():
            for message in self.messages[:limit]:
                yield message

        return iterate()

    async def fetch_message(self, message_id: int) -> FakeMessage:
        for message in self.messages:
            if message.id == message_id:
                return message
        raise http_error(discord.NotFound, 404, "Unknown Message")


def write_config(path: Path, payload: Dict[str, Any]) -> Path:
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


@pytest.fixture
def config_factory(tmp_path: Path):
    def build(**stream_settings: Any) -> AppConfig:
        section = {
            "channel_id": 111,
            "update_interval_minutes": 5,
            "mention_role_id": 222,
            "game_name": "Momentum Mod",
            "soft_ban_grace_passes": 2,
            "twitch_user_bans": [],
        }
        section.update(stream_settings)
        payload = {"guild_id": 1, "admin": {"bot_channel_id": 333}, "stream_monitor": section}
        return AppConfig(write_config(tmp_path / "app_config.yml", payload))

    return build


@pytest.fixture
def app_config(config_factory) -> AppConfig:
    return config_factory()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def twitch() -> FakeTwitch:
    return FakeTwitch()
