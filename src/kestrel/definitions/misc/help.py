"""Help for all commands, one category or one command."""

from __future__ import annotations

from typing import Any, Dict, List

import discord

from kestrel.commands.definition import CommandDefinition
from kestrel.commands.lookup import find_category, find_command, help_categories
from kestrel.configuration.app_configuration import AppConfig, CategoryInfo
from kestrel.ui.paginator import send_paginated
from kestrel.util import discord_utils
from kestrel.util.embeds import apply_embed_structure, error_embed

LINK_LABELS = {
    "support": "Support Server",
    "vote": "Vote",
    "donation": "Donate",
    "tos": "Terms of Service",
    "privacy": "Privacy Policy",
}


def _resolve(token: str, bot: Any) -> Dict[str, Any]:
    command = find_command(token, bot.registry)
    if command is not None:
        return {"command": command}
    category = find_category(token, bot.config, bot.registry)
    if category is not None:
        return {"category": category}
    return {"unknown": token}


def text_extract(message: discord.Message, bot: Any) -> Dict[str, Any]:
    args = discord_utils.get_text_arguments(message)
    return _resolve(args[0], bot) if args else {}


def slash_extract(interaction: discord.Interaction, bot: Any) -> Dict[str, Any]:
    options = discord_utils.get_slash_options(interaction)
    if options.get("command"):
        command = find_command(str(options["command"]), bot.registry)
        return {"command": command} if command else {"unknown": options["command"]}
    if options.get("category"):
        category = find_category(str(options["category"]), bot.config, bot.registry)
        return {"category": category} if category else {"unknown": options["category"]}
    return {}


def links_line(config: AppConfig, bot_id: int | None = None) -> str:
    links = [f"[{LINK_LABELS.get(key, key.capitalize())}]({url})" for key, url in config.links.items()]
    if bot_id is not None:
        invite = discord_utils.generate_bot_invite(bot_id, config.invite_permissions)
        links.insert(0, f"[Invite]({invite})")
    return " | ".join(links)


def main_embed(categories: List[CategoryInfo], prefix: str, config: AppConfig, bot_id: int | None) -> discord.Embed:
    lines = [f"`{prefix}help {info.name}` - **{info.name.capitalize()}** commands" for info in categories]
    embed = discord.Embed(title="Help", description="\n".join(lines) or "No commands are loaded.")
    embed.add_field(
        name="Need more help?",
        value=f"Use `{prefix}help <command>` for details about a single command.",
        inline=False,
    )
    links = links_line(config, bot_id)
    if links:
        embed.add_field(name="Links", value=links, inline=False)
    return apply_embed_structure(embed, prefix, config)


def category_embed(info: CategoryInfo, commands: List[CommandDefinition], prefix: str, config: AppConfig) -> discord.Embed:
    embed = discord.Embed(
        title=f"{info.name.capitalize()} commands",
        description=info.description or None,
    )
    embed.add_field(
        name="Commands",
        value="\n".join(f"`{prefix}{command.name}` - {command.description}" for command in commands) or "None",
        inline=False,
    )
    return apply_embed_structure(embed, prefix, config)


def command_embed(command: CommandDefinition, prefix: str, config: AppConfig, bot_id: int | None) -> discord.Embed:
    embed = discord.Embed(title=f"{prefix}{command.name}")
    embed.add_field(name="Category", value=command.category.capitalize(), inline=True)
    embed.add_field(name="Usage", value=f"`{prefix}{command.usage or command.name}`", inline=True)
    embed.add_field(name="Description", value=command.description, inline=False)
    embed.add_field(
        name="Aliases",
        value=", ".join(f"`{alias}`" for alias in command.aliases) or "None",
        inline=True,
    )
    embed.add_field(name="Cooldown", value=f"{command.cooldown:g}s" if command.cooldown else "None", inline=True)
    links = links_line(config, bot_id)
    if links:
        embed.add_field(name="Links", value=links, inline=False)
    return apply_embed_structure(embed, prefix, config)


def help_pages(bot: Any, prefix: str, config: AppConfig, selected: CategoryInfo | None = None) -> List[discord.Embed]:
    """Overview page followed by one page per visible category.

    With ``selected`` the pages are rotated so that category comes first.
    """
    bot_id = bot.user.id if bot.user is not None else None
    categories = [info for info in help_categories(config, bot.registry) if not info.hidden]
    pages = [main_embed(categories, prefix, config, bot_id)]
    pages.extend(category_embed(info, bot.registry.in_category(info.name), prefix, config) for info in categories)

    if selected is not None:
        names = [info.name.lower() for info in categories]
        if selected.name.lower() in names:
            start = names.index(selected.name.lower()) + 1
            pages = pages[start:] + pages[:start]
    return pages


async def execute(bot: Any, invocation: Any, prefix: str, config: AppConfig, option_data: Dict[str, Any]) -> None:
    # Slash invocations display the guild's text prefix
    text_prefix = await bot.settings_cache.get_prefix(
        discord_utils.invocation_guild_id(invocation), config.default_prefix
    )

    if "unknown" in option_data:
        await discord_utils.reply(
            invocation,
            embed=error_embed(
                f"`{option_data['unknown']}` is not a command or category. Use `{text_prefix}help` to list them.",
                text_prefix,
                config,
            ),
        )
        return

    command = option_data.get("command")
    if command is not None:
        bot_id = bot.user.id if bot.user is not None else None
        await discord_utils.reply(invocation, embed=command_embed(command, text_prefix, config, bot_id))
        return

    pages = help_pages(bot, text_prefix, config, option_data.get("category"))
    await send_paginated(invocation, pages, discord_utils.invocation_user(invocation).id)


command = {
    "name": "help",
    "description": "Help for all commands, or for one category or command",
    "usage": "help [category|command]",
    "aliases": ["h", "halp"],
    "cooldown": 2,
    "options": [
        {"string": {"name": "category", "description": "Category to show the commands of"}},
        {"string": {"name": "command", "description": "Command to show details for"}},
    ],
    "execute": execute,
    "text_extract": text_extract,
    "slash_extract": slash_extract,
}
