"""
Access to the application commands currently registered with Discord.

Responses are projected into small frozen records as soon as they arrive, so
nothing downstream ever holds a reference to library objects (guilds, state,
http clients) that point back at each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import discord

from kestrel.commands.builder import CommandPayload
from kestrel.util.logger import get_logger

logger = get_logger("remote_commands")


@dataclass(frozen=True, slots=True)
class CommandScope:
    """Where a command is registered: application-wide or inside one guild."""

    guild_id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return self.guild_id is None

    def __str__(self) -> str:
        return "global" if self.guild_id is None else f"guild {self.guild_id}"


GLOBAL_SCOPE = CommandScope()


@dataclass(frozen=True, slots=True)
class RemoteOption:
    """Projection of one option (or subcommand) of a registered command."""

    type: int
    name: str
    description: str = ""
    required: bool = False
    options: Tuple["RemoteOption", ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RemoteOption":
        return cls(
            type=int(payload.get("type", 0)),
            name=str(payload.get("name", "")),
            description=str(payload.get("description") or ""),
            required=bool(payload.get("required", False)),
            options=tuple(cls.from_payload(option) for option in payload.get("options") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "required": self.required,
            "options": [option.to_dict() for option in self.options],
        }


@dataclass(frozen=True, slots=True)
class RemoteCommand:
    """Projection of a registered application command."""

    id: int
    name: str
    description: str
    type: int = 1
    scope: CommandScope = GLOBAL_SCOPE
    options: Tuple[RemoteOption, ...] = ()
    version: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], scope: CommandScope) -> "RemoteCommand":
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name", "")),
            description=str(payload.get("description") or ""),
            type=int(payload.get("type", 1)),
            scope=scope,
            options=tuple(RemoteOption.from_payload(option) for option in payload.get("options") or ()),
            version=payload.get("version"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "guild_id": self.scope.guild_id,
            "version": self.version,
            "options": [option.to_dict() for option in self.options],
        }


class ApplicationCommandClient:
    """Fetch/create/edit/delete application commands through ``bot.http``.

    Args:
        bot: A connected bot; ``bot.application_id`` must be known, which is
            the case from ``on_ready`` onward.
    """

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    @property
    def application_id(self) -> int:
        application_id = self.bot.application_id
        if application_id is None:
            raise RuntimeError("Application id is unknown; the bot is not connected yet")
        return application_id

    async def fetch(self, scope: CommandScope) -> List[RemoteCommand]:
        if scope.is_global:
            payloads = await self.bot.http.get_global_commands(self.application_id)
        else:
            payloads = await self.bot.http.get_guild_commands(self.application_id, scope.guild_id)
        return [RemoteCommand.from_payload(payload, scope) for payload in payloads or ()]

    async def create(self, scope: CommandScope, payload: CommandPayload) -> RemoteCommand:
        if scope.is_global:
            created = await self.bot.http.upsert_global_command(self.application_id, payload)
        else:
            created = await self.bot.http.upsert_guild_command(self.application_id, scope.guild_id, payload)
        return RemoteCommand.from_payload(created, scope)

    async def edit(self, command: RemoteCommand, payload: CommandPayload) -> RemoteCommand:
        scope = command.scope
        if scope.is_global:
            edited = await self.bot.http.edit_global_command(self.application_id, command.id, payload)
        else:
            edited = await self.bot.http.edit_guild_command(
                self.application_id, scope.guild_id, command.id, payload
            )
        return RemoteCommand.from_payload(edited, scope)

    async def delete(self, command: RemoteCommand) -> None:
        scope = command.scope
        if scope.is_global:
            await self.bot.http.delete_global_command(self.application_id, command.id)
        else:
            await self.bot.http.delete_guild_command(self.application_id, scope.guild_id, command.id)

    async def overwrite(self, scope: CommandScope, payloads: Sequence[CommandPayload]) -> List[RemoteCommand]:
        """Replace every command of ``scope`` with ``payloads`` in one request."""
        if scope.is_global:
            result = await self.bot.http.bulk_upsert_global_commands(self.application_id, list(payloads))
        else:
            result = await self.bot.http.bulk_upsert_guild_commands(
                self.application_id, scope.guild_id, list(payloads)
            )
        return [RemoteCommand.from_payload(payload, scope) for payload in result or ()]
