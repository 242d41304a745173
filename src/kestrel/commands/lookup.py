"""Name/alias lookups used by the help command and by command bodies."""

from __future__ import annotations

from typing import List, Optional

from kestrel.commands.definition import CommandDefinition
from kestrel.commands.loader import CommandRegistry
from kestrel.configuration.app_configuration import AppConfig, CategoryInfo


def find_command(token: Optional[str], registry: CommandRegistry) -> Optional[CommandDefinition]:
    """Resolve ``token`` as a command name or alias."""
    if not token:
        return None
    return registry.resolve(token.strip())


def help_categories(config: AppConfig, registry: CommandRegistry) -> List[CategoryInfo]:
    """Categories that have loaded commands, configured ones first in configured order.

    Categories without configuration still show up, with default metadata.
    """
    loaded = {name.lower() for name in registry.categories}
    result = [info for info in config.categories if info.name.lower() in loaded]
    configured = {info.name.lower() for info in result}
    for name in registry.categories:
        if name.lower() not in configured:
            result.append(CategoryInfo(name=name, description=f"{name.capitalize()} commands"))
    return result


def find_category(
    token: Optional[str],
    config: AppConfig,
    registry: CommandRegistry,
    *,
    include_hidden: bool = False,
) -> Optional[CategoryInfo]:
    """Resolve ``token`` as a category name or one of its aliases."""
    if not token:
        return None
    key = token.strip().lower()
    for info in help_categories(config, registry):
        if info.hidden and not include_hidden:
            continue
        if info.name.lower() == key or key in (alias.lower() for alias in info.aliases):
            return info
    return None
