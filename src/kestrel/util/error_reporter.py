"""
Posts errors to the bot's error-log channel.

Tracebacks are split into code-block messages small enough for Discord's
2000-character limit. When the channel is not configured, not visible or not
sendable, the error goes to the local log instead. Reporting never raises.
"""

from __future__ import annotations

import traceback
from typing import Optional, Union

import discord

from kestrel.util.discord_utils import chunk_text
from kestrel.util.logger import get_logger

logger = get_logger("error_reporter")

# Leaves room for the code-block fence around each chunk
SIZE_RESTRICTION = 1990


def format_error(error: Union[BaseException, str]) -> str:
    if isinstance(error, BaseException):
        text = "".join(traceback.format_exception(type(error), error, error.__traceback__)).strip()
        return text or repr(error)
    return str(error)


class ErrorReporter:
    """Error-log boundary bound to a bot and a channel id once the bot exists."""

    def __init__(self) -> None:
        self._bot: Optional[discord.Client] = None
        self._channel_id: Optional[int] = None

    def bind(self, bot: discord.Client, channel_id: Optional[int]) -> None:
        self._bot = bot
        self._channel_id = channel_id

    def _channel(self) -> Optional[discord.abc.Messageable]:
        if self._bot is None or self._channel_id is None:
            return None
        channel = self._bot.get_channel(self._channel_id)
        if channel is None or not hasattr(channel, "send"):
            return None
        return channel

    async def report(self, error: Union[BaseException, str]) -> bool:
        """Send ``error`` to the error channel; returns False if it fell back to the log."""
        text = format_error(error)
        channel = self._channel()
        if channel is None:
            logger.error("[ERROR LOG] Error channel unavailable; error being logged:\n%s", text)
            return False

        try:
            for chunk in chunk_text(text, SIZE_RESTRICTION):
                await channel.send(f"```\n{chunk}\n```")
        except Exception as exc:
            logger.error("[ERROR LOG] Error logging error: %s", exc)
            logger.error("[ERROR LOG] Error being logged:\n%s", text)
            return False
        return True


# Shared application-wide reporter
error_reporter = ErrorReporter()
