"""
Typed command definitions and the validation applied at load time.

A definition file exposes a module-level ``command`` mapping::

    command = {
        "name": "help",
        "description": "Help for all commands, or for one specific command",
        "usage": "help [category|command]",
        "aliases": ["h"],
        "cooldown": 2,
        "options": [{"string": {"name": "command", "description": "..."}}],
        "execute": execute,
        "text_extract": text_extract,
        "slash_extract": slash_extract,
    }

:func:`parse_definition` turns that mapping into a :class:`CommandDefinition`
or raises :class:`CommandDefinitionError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from kestrel.util.logger import get_logger

logger = get_logger("command_definition")

# Discord's constraint on command, subcommand and option names
NAME_PATTERN = re.compile(r"^[-_\w]{1,32}$")
MAX_DESCRIPTION_LENGTH = 100

Execute = Callable[..., Awaitable[Any]]
Extractor = Callable[..., Any]


class CommandDefinitionError(ValueError):
    """Raised when a definition file does not have the required shape."""


class OptionKind(IntEnum):
    """Option kinds accepted in definition files, valued as Discord option types."""

    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11

    @classmethod
    def from_tag(cls, tag: str) -> Optional["OptionKind"]:
        """Look up a kind by its on-disk tag (``"string"``, ``"user"``...)."""
        return cls.__members__.get(tag.strip().upper())


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """A single typed option of a command."""

    kind: OptionKind
    name: str
    description: str
    required: bool = False


@dataclass(slots=True)
class CommandDefinition:
    """A validated command, ready to be registered and dispatched."""

    name: str
    description: str
    execute: Execute
    category: str = ""
    usage: str = ""
    aliases: Tuple[str, ...] = ()
    cooldown: float = 0.0
    options: Tuple[OptionSpec, ...] = ()
    text_extract: Optional[Extractor] = None
    slash_extract: Optional[Extractor] = None
    source: str = field(default="", compare=False)

    @property
    def key(self) -> str:
        """Case-folded name used for registry lookups."""
        return self.name.lower()


def _require_text(raw: Mapping[str, Any], key: str, owner: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CommandDefinitionError(f"{owner} is missing a valid {key}")
    return value.strip()


def _check_name(name: str, owner: str) -> None:
    if not NAME_PATTERN.match(name.lower()):
        raise CommandDefinitionError(f"{owner} has an invalid name {name!r}")


def _check_description(description: str, owner: str) -> None:
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise CommandDefinitionError(
            f"{owner} description exceeds {MAX_DESCRIPTION_LENGTH} characters"
        )


def parse_option(raw: Any, command_name: str) -> Optional[OptionSpec]:
    """Parse one ``{kind: {name, description, required?}}`` mapping.

    Returns None (after a warning) for an unknown kind tag so the rest of the
    command still loads. Any other malformation raises.
    """
    owner = f"Option of command '{command_name}'"
    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise CommandDefinitionError(f"{owner} must be a mapping with exactly one kind tag: {raw!r}")

    tag, details = next(iter(raw.items()))
    if not isinstance(details, Mapping):
        raise CommandDefinitionError(f"{owner} '{tag}' must map to a details mapping")

    name = _require_text(details, "name", owner)
    description = _require_text(details, "description", owner)
    _check_name(name, owner)
    _check_description(description, owner)

    kind = OptionKind.from_tag(str(tag))
    if kind is None:
        logger.warning(
            "[COMMAND LOADER] Unknown option type '%s' in command '%s'; option skipped",
            tag,
            command_name,
        )
        return None

    return OptionSpec(
        kind=kind,
        name=name.lower(),
        description=description,
        required=bool(details.get("required", False)),
    )


def parse_definition(raw: Any, category: str, source: str = "") -> CommandDefinition:
    """Validate a raw ``command`` mapping and return a typed definition.

    Args:
        raw: The object exported by the definition file.
        category: Name of the directory the file lives in.
        source: File path, kept for log messages.

    Raises:
        CommandDefinitionError: If a required field is missing or has the wrong type.
    """
    if not isinstance(raw, Mapping):
        raise CommandDefinitionError("Command definition must be a mapping")

    name = _require_text(raw, "name", "Command")
    owner = f"Command '{name}'"
    _check_name(name, owner)
    description = _require_text(raw, "description", owner)
    _check_description(description, owner)

    execute = raw.get("execute")
    if not callable(execute):
        raise CommandDefinitionError(f"{owner} is missing a valid execute function")

    extractors = {}
    for key in ("text_extract", "slash_extract"):
        extractor = raw.get(key)
        if extractor is not None and not callable(extractor):
            raise CommandDefinitionError(f"{owner} {key} must be a function")
        extractors[key] = extractor

    usage = raw.get("usage", "")
    if not isinstance(usage, str):
        raise CommandDefinitionError(f"{owner} usage must be a string")

    aliases = raw.get("aliases") or []
    if not isinstance(aliases, (list, tuple)) or not all(isinstance(a, str) and a.strip() for a in aliases):
        raise CommandDefinitionError(f"{owner} aliases must be a list of non-empty strings")

    cooldown = raw.get("cooldown") or 0
    if isinstance(cooldown, bool) or not isinstance(cooldown, (int, float)) or cooldown < 0:
        raise CommandDefinitionError(f"{owner} cooldown must be a non-negative number")

    raw_options = raw.get("options")
    if raw_options is None:
        raw_options = []
    if not isinstance(raw_options, (list, tuple)):
        raise CommandDefinitionError(f"{owner} options must be a list")

    options = []
    for raw_option in raw_options:
        option = parse_option(raw_option, name)
        if option is not None:
            options.append(option)

    return CommandDefinition(
        name=name,
        description=description,
        execute=execute,
        category=category,
        usage=usage,
        aliases=tuple(alias.strip().lower() for alias in aliases),
        cooldown=float(cooldown),
        options=tuple(options),
        text_extract=extractors["text_extract"],
        slash_extract=extractors["slash_extract"],
        source=source,
    )
