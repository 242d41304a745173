from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import fcntl
from typing import Any, Dict, List, Optional
import yaml

from kestrel.util.logger import get_logger

logger = get_logger("app_configuration")

CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_PREFIX = ">"
DEFAULT_BACKUP_TIME = "23:59"
DEFAULT_BACKUP_COLLECTIONS = ("bot_guilds", "bot_users", "blacklist")


@dataclass(slots=True)
class EmbedStyle:
    """Colours and footer applied to every embed the bot sends."""

    colour: int = 0x5865F2
    error_colour: int = 0xED4245
    footer_icon: Optional[str] = None


@dataclass(slots=True)
class BackupSettings:
    """Where and when the daily backup job runs."""

    channel_id: Optional[int] = None
    time: str = DEFAULT_BACKUP_TIME
    collections: List[str] = field(default_factory=lambda: list(DEFAULT_BACKUP_COLLECTIONS))
    source_dir: str = "./src"


@dataclass(slots=True)
class CategoryInfo:
    """Display metadata for a command category, used by the help command."""

    name: str
    description: str = ""
    aliases: List[str] = field(default_factory=list)
    hidden: bool = False


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        logger.warning("[APP CONFIGURATION] Expected an integer, got %r", value)
        return None


def _as_colour(value: Any, default: int) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.lstrip("#"), 16)
        except ValueError:
            logger.warning("[APP CONFIGURATION] Invalid colour %r, using default", value)
    return default


class AppConfig:
    """Typed, cached view of ``config/app_config.yml``.

    The file is read under a shared ``fcntl`` lock. Every property has a
    default, so a missing or malformed file still yields a usable config.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    def load_from_disk(self) -> Dict[str, Any]:
        """Parse the YAML file; any failure is logged and yields ``{}``."""
        if not self.config_path.is_file():
            logger.error("[APP CONFIGURATION] No config file at %s", self.config_path)
            return {}
        try:
            with self.config_path.open("r", encoding="utf-8") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
                try:
                    loaded = yaml.safe_load(handle)
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Unreadable config %s: %s", self.config_path, exc)
            return {}

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            logger.error("[APP CONFIGURATION] Top level of %s is a %s, expected a mapping",
                         self.config_path, type(loaded).__name__)
            return {}
        return loaded

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    def reload(self) -> Dict[str, Any]:
        """Re-read the file, replace the cache and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached mapping itself; treat it as read-only."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    @property
    def default_prefix(self) -> str:
        """Text-command prefix used by guilds that have not configured one."""
        value = self._data.get("default_prefix")
        return str(value) if value else DEFAULT_PREFIX

    @property
    def slash_global(self) -> bool:
        """True to register slash commands application-wide, False for per-guild."""
        return bool(self._data.get("slash_global", False))

    @property
    def purge_foreign_scope(self) -> bool:
        """Whether commands registered in the inactive scope are deleted on startup."""
        return bool(self._data.get("purge_foreign_scope", True))

    @property
    def error_log_channel_id(self) -> Optional[int]:
        return _as_int(self._data.get("error_log_channel_id"))

    @property
    def commands_dir(self) -> Path:
        """Root of the category/command definition tree."""
        value = self._data.get("commands_dir")
        if value:
            return Path(value).resolve()
        return (Path(__file__).resolve().parents[1] / "definitions").resolve()

    @property
    def database_path(self) -> Path:
        return Path(self._data.get("database_path") or "./data/kestrel.db").resolve()

    @property
    def embed(self) -> EmbedStyle:
        section = self._section("embed")
        defaults = EmbedStyle()
        return EmbedStyle(
            colour=_as_colour(section.get("colour"), defaults.colour),
            error_colour=_as_colour(section.get("error_colour"), defaults.error_colour),
            footer_icon=section.get("footer_icon") or None,
        )

    @property
    def backup(self) -> BackupSettings:
        section = self._section("backup")
        settings = BackupSettings(channel_id=_as_int(section.get("channel_id")))
        if section.get("time"):
            settings.time = str(section["time"])
        collections = section.get("collections")
        if isinstance(collections, list) and collections:
            settings.collections = [str(name) for name in collections]
        if section.get("source_dir"):
            settings.source_dir = str(section["source_dir"])
        return settings

    @property
    def links(self) -> Dict[str, str]:
        """Support/vote/donation/legal links shown by the help command."""
        return {str(key): str(value) for key, value in self._section("links").items() if value}

    @property
    def invite_permissions(self) -> int:
        return _as_int(self._data.get("invite_permissions")) or 0

    @property
    def top_gg_enabled(self) -> bool:
        return bool(self._section("top_gg").get("enabled", False))

    @property
    def categories(self) -> List[CategoryInfo]:
        """Category display metadata, in configured order."""
        result: List[CategoryInfo] = []
        raw = self._data.get("categories", [])
        if not isinstance(raw, list):
            return result
        for entry in raw:
            if not isinstance(entry, dict) or not entry.get("name"):
                logger.warning("[APP CONFIGURATION] Ignoring malformed category entry %r", entry)
                continue
            aliases = entry.get("aliases") or []
            result.append(
                CategoryInfo(
                    name=str(entry["name"]),
                    description=str(entry.get("description") or ""),
                    aliases=[str(alias) for alias in aliases] if isinstance(aliases, list) else [],
                    hidden=bool(entry.get("hidden", False)),
                )
            )
        return result


app_config = AppConfig(CONFIG_PATH)
