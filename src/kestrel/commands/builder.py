"""
Builds the Discord payload for a category's umbrella slash command.

Each category directory becomes one ``CHAT_INPUT`` command named after the
category, with one subcommand per definition::

    /misc help [category] [command]
    /misc info
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List

from kestrel.commands.definition import CommandDefinition, OptionKind, OptionSpec
from kestrel.util.logger import get_logger

logger = get_logger("slash_builder")

CHAT_INPUT_COMMAND = 1
SUB_COMMAND_OPTION = 1

CommandPayload = Dict[str, Any]


def _basic_option(option: OptionSpec) -> CommandPayload:
    return {
        "type": int(option.kind),
        "name": option.name,
        "description": option.description,
        "required": option.required,
    }


# Every kind maps to a builder; kinds needing extra fields get their own entry.
OPTION_BUILDERS: Dict[OptionKind, Callable[[OptionSpec], CommandPayload]] = {
    kind: _basic_option for kind in OptionKind
}


def build_subcommand(definition: CommandDefinition) -> CommandPayload:
    """Build the subcommand payload for one definition, options in declared order."""
    options: List[CommandPayload] = []
    for option in definition.options:
        option_builder = OPTION_BUILDERS.get(option.kind)
        if option_builder is None:
            logger.warning(
                "[SLASH BUILDER] No builder for option type '%s' in command '%s'; option skipped",
                option.kind,
                definition.name,
            )
            continue
        options.append(option_builder(option))

    return {
        "type": SUB_COMMAND_OPTION,
        "name": definition.key,
        "description": definition.description,
        "options": options,
    }


def build_category_command(definitions: Iterable[CommandDefinition], category: str) -> CommandPayload:
    """Return the target payload for ``category`` holding every definition as a subcommand."""
    subcommands = [build_subcommand(definition) for definition in definitions]
    return {
        "type": CHAT_INPUT_COMMAND,
        "name": category.lower(),
        "description": f"{category} commands",
        "options": subcommands,
    }
