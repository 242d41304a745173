"""Command listener Cog for Kestrel.

This cog forwards message and interaction events to the bot's dispatch router.
"""

import discord
from discord.ext import commands

from kestrel.util.logger import get_logger

logger = get_logger("command_listener_cog")


class CommandListenerCog(commands.Cog):
    """Cog that feeds text messages and slash interactions to the router."""

    def __init__(self, discord_bot_instance):
        """
        Initialize the command listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The KestrelBot instance to attach this cog to.
        """
        self.bot = discord_bot_instance
        logger.info("Command listener cog loaded")

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Dispatch prefixed or mention-addressed text commands."""
        try:
            await self.bot.router.handle_message(message)
        except Exception as exc:
            logger.error("[ROUTER] Failed to handle message %s: %s", message.id, exc, exc_info=exc)
            await self.bot.reporter.report(exc)

    @commands.Cog.listener(name='on_interaction')
    async def on_interaction(self, interaction: discord.Interaction):
        """Dispatch slash subcommands of the category commands."""
        try:
            await self.bot.router.handle_interaction(interaction)
        except Exception as exc:
            logger.error("[ROUTER] Failed to handle interaction %s: %s", interaction.id, exc, exc_info=exc)
            await self.bot.reporter.report(exc)


def setup(discord_bot_instance):
    """Register the CommandListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    """
    discord_bot_instance.add_cog(CommandListenerCog(discord_bot_instance))
