"""
Data structures for the stream monitor.

Key Features:
- `LiveStream`: Immutable snapshot of one live Twitch stream, fetched fresh every poll.
- `SoftBanList`: Stream ids whose announcement a moderator deleted by hand.
- `MonitorState`: The state owned by one reconciliation target (one channel).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional


def _parse_started_at(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class LiveStream:
    """One live stream as reported by the Twitch Helix ``/streams`` endpoint.

    Attributes:
        stream_id (str): Id of this broadcast session. Changes on every new stream.
        user_id (str): Twitch id of the broadcaster, used for bans.
        user_name (str): Display name of the broadcaster, also the embed author name.
        user_login (str): Lowercase login used to build the channel URL.
        title (str): Stream title.
        viewer_count (int): Current number of viewers.
        thumbnail_url (str): Preview URL template containing ``{width}`` and ``{height}``.
        started_at (datetime | None): When the broadcast started.
    """

    stream_id: str
    user_id: str
    user_name: str
    user_login: str
    title: str
    viewer_count: int
    thumbnail_url: str
    started_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, record: Mapping[str, Any]) -> "LiveStream":
        """Build a LiveStream from a raw Helix stream record."""
        user_name = str(record.get("user_name") or record.get("user_login") or "")
        return cls(
            stream_id=str(record["id"]),
            user_id=str(record["user_id"]),
            user_name=user_name,
            user_login=str(record.get("user_login") or user_name.lower()),
            title=str(record.get("title") or ""),
            viewer_count=int(record.get("viewer_count") or 0),
            thumbnail_url=str(record.get("thumbnail_url") or ""),
            started_at=_parse_started_at(record.get("started_at")),
        )

    @property
    def channel_url(self) -> str:
        return f"https://twitch.tv/{self.user_login}"


class SoftBanList:
    """Stream ids suppressed because their announcement was removed by someone else.

    Each entry counts the consecutive passes its stream has been missing from
    the live set. An entry is lifted once that count exceeds the grace period,
    so a stream that drops out of one Twitch response and comes back stays
    suppressed, while a later session (new stream id) is never affected.
    """

    def __init__(self, grace_passes: int = 0) -> None:
        self.grace_passes = grace_passes
        self._missing: Dict[str, int] = {}

    def add(self, stream_id: str) -> None:
        self._missing[stream_id] = 0

    def discard(self, stream_id: str) -> None:
        self._missing.pop(stream_id, None)

    def expire(self, live_stream_ids: Iterable[str]) -> List[str]:
        """Age the entries against the current live set and lift the expired ones.

        Returns:
            List[str]: The stream ids whose soft ban was lifted.
        """
        live = set(live_stream_ids)
        lifted: List[str] = []
        for stream_id in list(self._missing):
            if stream_id in live:
                self._missing[stream_id] = 0
                continue
            self._missing[stream_id] += 1
            if self._missing[stream_id] > self.grace_passes:
                del self._missing[stream_id]
                lifted.append(stream_id)
        return lifted

    def __contains__(self, stream_id: object) -> bool:
        return stream_id in self._missing

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._missing))

    def __len__(self) -> int:
        return len(self._missing)


@dataclass(slots=True)
class MonitorState:
    """State owned by the reconciliation of one announcement channel.

    Constructed empty at startup, repopulated by cache recovery and mutated
    only inside a reconciliation pass.

    Attributes:
        cache (Dict[str, int]): Stream id to id of the message announcing it.
        soft_bans (SoftBanList): Streams a moderator removed by deleting their message.
        previous_streams (List[LiveStream]): Live set fetched by the last successful pass.
    """

    cache: Dict[str, int] = field(default_factory=dict)
    soft_bans: SoftBanList = field(default_factory=SoftBanList)
    previous_streams: List[LiveStream] = field(default_factory=list)
