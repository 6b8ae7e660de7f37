from typing import Any, Dict, List


class StreamMonitorSettings:
    """Helper exposing typed accessors for the ``stream_monitor`` config section.

    The wrapper keeps a reference to the section mapping of the owning
    :class:`AppConfig`, so changes made through ``twitch_user_bans`` helpers on
    the config object are visible here without a reload.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data if data is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def channel_id(self) -> int:
        return int(self.data.get("channel_id") or 0)

    @property
    def update_interval_seconds(self) -> float:
        minutes = float(self.data.get("update_interval_minutes", 5))
        return max(minutes, 0.1) * 60.0

    @property
    def mention_role_id(self) -> int:
        return int(self.data.get("mention_role_id") or 0)

    @property
    def game_name(self) -> str:
        return str(self.data.get("game_name") or "Momentum Mod")

    @property
    def soft_ban_grace_passes(self) -> int:
        return max(int(self.data.get("soft_ban_grace_passes", 2)), 0)

    @property
    def twitch_user_bans(self) -> List[str]:
        bans = self.data.get("twitch_user_bans") or []
        if not isinstance(bans, list):
            return []
        return [str(ban) for ban in bans]
