"""Lifecycle cog for Kestrel.

Runs the one-time startup work (slash command reconciliation, backup
scheduling, server count posting) and keeps per-guild state in step with
guild joins and removals. Messages and interactions live in
``command_listener``.
"""

import discord
from discord.ext import commands

from kestrel.scheduler.backup_scheduler import BackupScheduler, backup_scheduler
from kestrel.util.logger import get_logger
from kestrel.util.stats_poster import post_server_count

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Gateway lifecycle handlers.

    Parameters
    ----------
    discord_bot_instance:
        The KestrelBot this cog belongs to.
    scheduler:
        Daily backup job, started after the first ``on_ready``.
    """

    def __init__(self, discord_bot_instance, scheduler: BackupScheduler = backup_scheduler):
        self.bot = discord_bot_instance
        self.scheduler = scheduler
        self.startup_complete = False
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """Refresh presence on every ready; run startup work only on the first one."""
        user = self.bot.user
        if user is None:
            logger.warning("on_ready fired before the bot user was available")
        else:
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(
                    type=discord.ActivityType.listening,
                    name=f"{self.bot.config.default_prefix}help",
                ),
            )
            logger.info("Logged in as %s (%s), %d guild(s)", user, user.id, len(self.bot.guilds))

        if self.startup_complete:
            logger.info("Gateway resumed; skipping startup work")
            return
        self.startup_complete = True

        guild_ids = [guild.id for guild in self.bot.guilds]
        await self.bot.command_reconciler().reconcile(guild_ids)

        self.scheduler.start(self.bot)

        if user is not None and self.bot.config.top_gg_enabled:
            await post_server_count(user.id, len(guild_ids))

    @commands.Cog.listener(name='on_guild_join')
    async def on_guild_join(self, guild: discord.Guild):
        """Register the slash commands in a newly joined guild (per-guild mode)."""
        logger.info("Joined %s (%s)", guild.name, guild.id)
        await self.bot.command_reconciler().register_guild(guild.id)

    @commands.Cog.listener(name='on_guild_remove')
    async def on_guild_remove(self, guild: discord.Guild):
        logger.info("Left %s (%s)", guild.name, guild.id)
        self.bot.settings_cache.invalidate(guild.id)


def setup(discord_bot_instance):
    """Add the EventsListenerCog to ``discord_bot_instance``."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance))
