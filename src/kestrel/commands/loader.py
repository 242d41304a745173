"""
Discovers command definition files and builds the in-memory registries.

Layout::

    definitions/
        misc/
            help.py      -> command = {...}
            info.py
        config/
            prefix.py

Every immediate subdirectory is a category; every ``*.py`` file in it (files
starting with ``_`` excepted) must expose a module-level ``command`` mapping.
A file that fails to import or validate is logged and skipped.
"""

from __future__ import annotations

import importlib.util
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from kestrel.commands.builder import CommandPayload, build_category_command
from kestrel.commands.definition import CommandDefinition, CommandDefinitionError, parse_definition
from kestrel.util.logger import get_logger

logger = get_logger("command_loader")

DEFINITION_ATTRIBUTE = "command"
MODULE_NAMESPACE = "kestrel_commands"


@dataclass
class CommandRegistry:
    """Name, alias and slash-target registries produced by :func:`load_commands`."""

    commands: Dict[str, CommandDefinition] = field(default_factory=dict)
    aliases: Dict[str, str] = field(default_factory=dict)
    slash_targets: Dict[str, CommandPayload] = field(default_factory=dict)
    rejected: List[Tuple[Path, str]] = field(default_factory=list)

    def resolve(self, token: Optional[str]) -> Optional[CommandDefinition]:
        """Resolve a command by name, falling back to aliases (case-insensitive)."""
        if not token:
            return None
        key = token.lower()
        command = self.commands.get(key)
        if command is None and key in self.aliases:
            command = self.commands.get(self.aliases[key])
        return command

    def in_category(self, category: str) -> List[CommandDefinition]:
        """Definitions of one category, sorted by name."""
        category = category.lower()
        return sorted(
            (command for command in self.commands.values() if command.category.lower() == category),
            key=lambda command: command.key,
        )

    @property
    def categories(self) -> List[str]:
        return sorted({command.category for command in self.commands.values()})

    def register(self, definition: CommandDefinition) -> bool:
        """Add a definition and its aliases; returns False if the name is taken."""
        existing = self.commands.get(definition.key)
        if existing is not None:
            logger.warning(
                "[COMMAND LOADER] Duplicate command name '%s' in %s (already defined in %s); file skipped",
                definition.name,
                definition.source,
                existing.source,
            )
            return False

        self.commands[definition.key] = definition
        for alias in definition.aliases:
            owner = self.aliases.get(alias)
            if owner is not None and owner != definition.key:
                logger.warning(
                    "[COMMAND LOADER] Alias '%s' of '%s' already belongs to '%s'; alias ignored",
                    alias,
                    definition.name,
                    owner,
                )
                continue
            self.aliases[alias] = definition.key
        return True


def _import_definition(path: Path, category: str) -> Any:
    module_name = f"{MODULE_NAMESPACE}.{category}.{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise CommandDefinitionError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    if not hasattr(module, DEFINITION_ATTRIBUTE):
        raise CommandDefinitionError(f"{path.name} does not define '{DEFINITION_ATTRIBUTE}'")
    return getattr(module, DEFINITION_ATTRIBUTE)


def _definition_files(category_dir: Path) -> List[Path]:
    return sorted(
        path for path in category_dir.iterdir()
        if path.is_file() and path.suffix == ".py" and not path.name.startswith("_")
    )


def _category_dirs(root: Path) -> List[Path]:
    return sorted(
        path for path in root.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )


def load_category(registry: CommandRegistry, category_dir: Path) -> List[CommandDefinition]:
    """Load every definition file of one category into ``registry``."""
    category = category_dir.name
    loaded: List[CommandDefinition] = []

    for path in _definition_files(category_dir):
        try:
            raw = _import_definition(path, category)
            definition = parse_definition(raw, category, source=str(path))
        except CommandDefinitionError as exc:
            logger.warning("[COMMAND LOADER] Invalid command structure in %s: %s", path.name, exc)
            registry.rejected.append((path, str(exc)))
            continue
        except Exception as exc:
            logger.error("[COMMAND LOADER] Error loading command from %s: %s", path.name, exc)
            registry.rejected.append((path, str(exc)))
            continue

        if registry.register(definition):
            loaded.append(definition)
        else:
            registry.rejected.append((path, f"duplicate command name '{definition.name}'"))

    return loaded


async def load_commands(root: Path) -> CommandRegistry:
    """Walk ``root`` and return the populated :class:`CommandRegistry`.

    Has no side effects beyond importing the definition modules; nothing is
    sent to Discord here.
    """
    registry = CommandRegistry()
    if not root.is_dir():
        logger.error("[COMMAND LOADER] Commands directory %s does not exist", root)
        return registry

    for category_dir in _category_dirs(root):
        definitions = load_category(registry, category_dir)
        if definitions:
            registry.slash_targets[category_dir.name.lower()] = build_category_command(
                definitions, category_dir.name
            )

    logger.info(
        "[COMMAND LOADER] Loaded %d commands in %d categories (%d files rejected)",
        len(registry.commands),
        len(registry.slash_targets),
        len(registry.rejected),
    )
    return registry
