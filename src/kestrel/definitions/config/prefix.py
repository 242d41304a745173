"""Show or change the server's text-command prefix."""

from __future__ import annotations

from typing import Any, Dict

import discord

from kestrel.configuration.app_configuration import AppConfig
from kestrel.util import discord_utils
from kestrel.util.embeds import apply_embed_structure, error_embed


def text_extract(message: discord.Message, bot: Any) -> Dict[str, Any]:
    args = discord_utils.get_text_arguments(message)
    return {"prefix": args[0]} if args else {}


def slash_extract(interaction: discord.Interaction, bot: Any) -> Dict[str, Any]:
    value = discord_utils.get_slash_options(interaction).get("prefix")
    return {"prefix": str(value)} if value else {}


def can_manage_guild(user: Any) -> bool:
    permissions = getattr(user, "guild_permissions", None)
    return bool(permissions and (permissions.manage_guild or permissions.administrator))


async def execute(bot: Any, invocation: Any, prefix: str, config: AppConfig, option_data: Dict[str, Any]) -> None:
    guild_id = discord_utils.invocation_guild_id(invocation)
    current = await bot.settings_cache.get_prefix(guild_id, config.default_prefix)
    new_prefix = option_data.get("prefix")

    if not new_prefix:
        embed = discord.Embed(title="Prefix", description=f"The prefix for this server is `{current}`")
        await discord_utils.reply(invocation, embed=apply_embed_structure(embed, current, config))
        return

    if not can_manage_guild(discord_utils.invocation_user(invocation)):
        await discord_utils.reply(
            invocation,
            embed=error_embed("You need the **Manage Server** permission to change the prefix.", current, config),
        )
        return

    try:
        await bot.settings_cache.set_prefix(guild_id, new_prefix)
    except ValueError as exc:
        await discord_utils.reply(invocation, embed=error_embed(str(exc), current, config))
        return

    embed = discord.Embed(title="Prefix updated", description=f"The prefix for this server is now `{new_prefix}`")
    await discord_utils.reply(invocation, embed=apply_embed_structure(embed, new_prefix, config))


command = {
    "name": "prefix",
    "description": "Show or change the text-command prefix of this server",
    "usage": "prefix [new prefix]",
    "aliases": ["setprefix"],
    "cooldown": 3,
    "options": [
        {"string": {"name": "prefix", "description": "New prefix (up to 5 characters)"}},
    ],
    "execute": execute,
    "text_extract": text_extract,
    "slash_extract": slash_extract,
}
