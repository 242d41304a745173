"""
Embed generation functions for the bot.
"""

import datetime

import discord

from kestrel.configuration.app_configuration import AppConfig, app_config


def _footer(embed: discord.Embed, prefix: str, config: AppConfig) -> discord.Embed:
    icon = config.embed.footer_icon
    if icon:
        return embed.set_footer(text=f"Prefix {prefix}", icon_url=icon)
    return embed.set_footer(text=f"Prefix {prefix}")


def error_embed(message: str, prefix: str, config: AppConfig = app_config) -> discord.Embed:
    """Standard failure embed shown to users."""
    embed = discord.Embed(
        title="Uh oh! :x:",
        description=message,
        colour=config.embed.error_colour,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    return _footer(embed, prefix, config)


def apply_embed_structure(
    embed: discord.Embed,
    prefix: str,
    config: AppConfig = app_config,
    set_footer: bool = True,
) -> discord.Embed:
    """Apply the configured colour, timestamp and (optionally) prefix footer."""
    embed.colour = config.embed.colour
    embed.timestamp = datetime.datetime.now(datetime.timezone.utc)
    if set_footer:
        _footer(embed, prefix, config)
    return embed
