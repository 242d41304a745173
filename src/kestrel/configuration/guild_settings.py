"""
Per-guild settings, read lazily from the document store and cached in memory.

Responsibilities:
- Load a guild's settings document the first time it is needed
- Keep it until the entry is invalidated or the whole cache is cleared
- Write prefix changes back and drop the stale entry

Document shape (collection ``bot_guilds``)::

    {"_id": 123456789012345678, "prefix": "!"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from kestrel.database.document_store import DocumentStore, document_store
from kestrel.util.logger import get_logger

logger = get_logger("guild_settings_cache")

GUILDS_COLLECTION = "bot_guilds"
MAX_PREFIX_LENGTH = 5


@dataclass(slots=True)
class GuildSettings:
    """Settings stored for one guild."""

    guild_id: int
    prefix: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "GuildSettings":
        extra = {key: value for key, value in document.items() if key not in ("_id", "prefix")}
        prefix = document.get("prefix")
        return cls(
            guild_id=int(document["_id"]),
            prefix=str(prefix) if prefix else None,
            extra=extra,
        )

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"_id": self.guild_id, **self.extra}
        if self.prefix:
            document["prefix"] = self.prefix
        return document


class GuildSettingsCache:
    """
    Process-wide cache of :class:`GuildSettings` keyed by guild id.

    A guild without a document is cached as ``None`` so the store is not
    queried again for it until invalidated. All access happens on the event
    loop thread; two concurrent misses for the same guild may both read the
    store, which is harmless since they compute the same value.
    """

    def __init__(self, store: DocumentStore = document_store) -> None:
        self._store = store
        self._entries: Dict[int, Optional[GuildSettings]] = {}

    def __contains__(self, guild_id: int) -> bool:
        return guild_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def _load(self, guild_id: int) -> Optional[GuildSettings]:
        document = await self._store.find_one(GUILDS_COLLECTION, {"_id": guild_id})
        return GuildSettings.from_document(document) if document is not None else None

    async def get(self, guild_id: int) -> Optional[GuildSettings]:
        """Return the guild's settings, loading them on first access."""
        if guild_id in self._entries:
            return self._entries[guild_id]
        settings = await self._load(guild_id)
        self._entries[guild_id] = settings
        return settings

    async def refresh(self, guild_id: int) -> Optional[GuildSettings]:
        """Re-read one guild; the cached entry is only replaced when a document exists."""
        settings = await self._load(guild_id)
        if settings is not None:
            self._entries[guild_id] = settings
        return settings

    def invalidate(self, guild_id: int) -> None:
        """Forget one guild so the next :meth:`get` reads the store again."""
        self._entries.pop(guild_id, None)

    def clear(self) -> None:
        """Forget every guild."""
        count = len(self._entries)
        self._entries = {}
        logger.debug("[GUILD SETTINGS] Cleared %d cached guilds", count)

    async def get_prefix(self, guild_id: Optional[int], default: str) -> str:
        """Text prefix configured for the guild, or ``default``."""
        if guild_id is None:
            return default
        settings = await self.get(guild_id)
        return settings.prefix if settings is not None and settings.prefix else default

    async def set_prefix(self, guild_id: int, prefix: Optional[str]) -> GuildSettings:
        """Persist a new prefix (None resets to the default) and invalidate the entry.

        Raises:
            ValueError: If the prefix is blank, contains whitespace or is too long.
        """
        if prefix is not None:
            if not prefix or any(char.isspace() for char in prefix) or len(prefix) > MAX_PREFIX_LENGTH:
                raise ValueError(f"Prefix must be 1-{MAX_PREFIX_LENGTH} characters without spaces")

        settings = await self._load(guild_id) or GuildSettings(guild_id=guild_id)
        settings.prefix = prefix
        await self._store.replace_one(GUILDS_COLLECTION, settings.to_document())
        self.invalidate(guild_id)
        logger.info("[GUILD SETTINGS] Prefix for guild %s set to %r", guild_id, prefix)
        return settings


# Shared application-wide cache
guild_settings_cache = GuildSettingsCache()
