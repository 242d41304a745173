"""
discord_utils.py
================

Stateless helpers shared by the router and the command bodies. A command is
invoked either by a ``discord.Message`` (text prefix) or by a
``discord.Interaction`` (slash command); these helpers hide the difference
where a command does not care.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Union

import discord

from kestrel.util.logger import get_logger

logger = get_logger("discord_utils")

Invocation = Union[discord.Message, discord.Interaction]

INVITE_URL = "https://discord.com/oauth2/authorize?client_id={client_id}&permissions={permissions}&scope=bot%20applications.commands"

# A user mention standing alone as the first word, e.g. "<@123>" or "<@!123>".
MENTION_TOKEN = re.compile(r"^<@!?\d+>$")


def is_interaction(invocation: Any) -> bool:
    return isinstance(invocation, discord.Interaction)


def invocation_user(invocation: Invocation) -> Union[discord.User, discord.Member]:
    """The member or user who triggered the invocation."""
    if is_interaction(invocation):
        return invocation.user
    return invocation.author


def invocation_guild_id(invocation: Invocation) -> Optional[int]:
    if is_interaction(invocation):
        return invocation.guild_id
    guild = getattr(invocation, "guild", None)
    return guild.id if guild is not None else None


def _subcommand_payload(interaction: discord.Interaction) -> Optional[Dict[str, Any]]:
    data = interaction.data or {}
    for option in data.get("options") or ():
        if option.get("type") == 1:
            return option
    return None


def get_subcommand_name(interaction: discord.Interaction) -> Optional[str]:
    """Name of the subcommand invoked under an umbrella command, if any."""
    subcommand = _subcommand_payload(interaction)
    return subcommand.get("name") if subcommand else None


def get_slash_options(interaction: discord.Interaction) -> Dict[str, Any]:
    """Option values passed to the invoked subcommand, keyed by option name."""
    subcommand = _subcommand_payload(interaction)
    if subcommand is None:
        return {}
    return {option["name"]: option.get("value") for option in subcommand.get("options") or ()}


def get_text_arguments(message: discord.Message) -> list[str]:
    """Whitespace-separated words after the command token.

    A leading mention (``@Bot help misc``) is skipped along with the command.
    """
    words = message.content.split()
    if words and MENTION_TOKEN.match(words[0]):
        words = words[1:]
    return words[1:]


async def reply(invocation: Invocation, **kwargs: Any) -> Optional[discord.Message]:
    """Reply to a message or respond to an interaction, returning the sent message.

    Interactions that were already responded to get a followup instead.
    """
    if is_interaction(invocation):
        if not invocation.response.is_done():
            await invocation.response.send_message(**kwargs)
            try:
                return await invocation.original_response()
            except discord.HTTPException:
                return None
        return await invocation.followup.send(wait=True, **kwargs)

    kwargs.setdefault("mention_author", False)
    return await invocation.reply(**kwargs)


def generate_bot_invite(client_id: int, permissions: int) -> str:
    """OAuth2 invite link adding the bot with slash-command scope."""
    return INVITE_URL.format(client_id=client_id, permissions=permissions)


def chunk_text(text: str, size: int) -> list[str]:
    """Split ``text`` into consecutive pieces of at most ``size`` characters."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [text[index:index + size] for index in range(0, len(text), size)] or [""]
