from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, FrozenSet, List
import yaml

from streamcord.configuration.stream_settings import StreamMonitorSettings
from streamcord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml``, exposes dictionary-like
    access helpers, and resolves stream monitor settings through
    :class:`StreamMonitorSettings`. Uses fcntl file locks for safe concurrent
    access across processes. The Twitch ban list is the only section the bot
    writes back, through :meth:`add_twitch_ban` and :meth:`remove_twitch_ban`.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def write_to_disk(self) -> None:
        """Persist the in-memory mapping back to the YAML file.

        Raises
        ------
        OSError
            When the file cannot be written; callers report it to the user.
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("a+", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.seek(0)
                f.truncate()
                yaml.safe_dump(self._data, f, sort_keys=False, allow_unicode=True)
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _stream_section(self) -> Dict[str, Any]:
        section = self._data.get("stream_monitor")
        if not isinstance(section, dict):
            section = {}
            self._data["stream_monitor"] = section
        return section

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (which will be an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (shallow reference)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def guild_id(self) -> int | None:
        """Guild the slash commands are registered in, ``None`` for global commands."""
        value = self._data.get("guild_id")
        return int(value) if value else None

    @property
    def admin_channel_id(self) -> int:
        """Channel receiving error reports and restart notices."""
        admin = self._data.get("admin", {})
        if isinstance(admin, dict):
            return int(admin.get("bot_channel_id") or 0)
        return 0

    @property
    def stream_monitor(self) -> StreamMonitorSettings:
        """Return the stream monitor settings wrapped in a StreamMonitorSettings helper."""
        return StreamMonitorSettings(self._stream_section())

    @property
    def twitch_user_bans(self) -> FrozenSet[str]:
        """Twitch user ids whose streams are never announced."""
        return frozenset(self.stream_monitor.twitch_user_bans)

    def _save_twitch_bans(self, bans: List[str]) -> None:
        """Replace the ban list and persist it, restoring the previous list if the write fails."""
        section = self._stream_section()
        missing = object()
        previous = section.get("twitch_user_bans", missing)
        section["twitch_user_bans"] = bans
        try:
            self.write_to_disk()
        except OSError:
            if previous is missing:
                section.pop("twitch_user_bans", None)
            else:
                section["twitch_user_bans"] = previous
            raise

    def add_twitch_ban(self, user_id: str) -> bool:
        """Add a Twitch user id to the ban list and save. Returns False if already banned."""
        bans = self.stream_monitor.twitch_user_bans
        if user_id in bans:
            return False
        self._save_twitch_bans(bans + [user_id])
        logger.info("[APP CONFIGURATION] Banned twitch user %s", user_id)
        return True

    def remove_twitch_ban(self, user_id: str) -> bool:
        """Remove a Twitch user id from the ban list and save. Returns False if it was not banned."""
        bans = self.stream_monitor.twitch_user_bans
        if user_id not in bans:
            return False
        self._save_twitch_bans([ban for ban in bans if ban != user_id])
        logger.info("[APP CONFIGURATION] Unbanned twitch user %s", user_id)
        return True


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
