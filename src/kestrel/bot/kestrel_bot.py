"""The Discord client, carrying the loaded registry and its collaborators."""

from __future__ import annotations

from typing import Any, Optional

import discord

from kestrel.commands.loader import CommandRegistry
from kestrel.commands.reconciler import CommandReconciler
from kestrel.commands.remote import ApplicationCommandClient
from kestrel.commands.router import DispatchRouter
from kestrel.configuration.app_configuration import AppConfig, app_config
from kestrel.configuration.guild_settings import GuildSettingsCache, guild_settings_cache
from kestrel.util.error_reporter import ErrorReporter, error_reporter


class KestrelBot(discord.Bot):
    """
    ``discord.Bot`` whose slash commands come from definition files.

    py-cord's own command sync is disabled; registration is owned by the
    :class:`CommandReconciler` returned from :meth:`command_reconciler`.

    Args:
        registry: Commands loaded from the definition tree.
        config: Application configuration.
        settings_cache: Per-guild settings (prefix) cache.
        reporter: Error-channel reporter used by the router.
        **options: Forwarded to ``discord.Bot`` (intents etc.).
    """

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        config: AppConfig = app_config,
        settings_cache: GuildSettingsCache = guild_settings_cache,
        reporter: ErrorReporter = error_reporter,
        **options: Any,
    ) -> None:
        options.setdefault("auto_sync_commands", False)
        super().__init__(**options)
        self.registry = registry
        self.config = config
        self.settings_cache = settings_cache
        self.reporter = reporter
        self.router = DispatchRouter(self, registry, settings_cache, config, reporter)
        self._reconciler: Optional[CommandReconciler] = None

    def command_reconciler(self) -> CommandReconciler:
        """The reconciler for this bot's slash targets, created on first use."""
        if self._reconciler is None:
            self._reconciler = CommandReconciler(
                ApplicationCommandClient(self),
                self.registry.slash_targets,
                slash_global=self.config.slash_global,
                purge_foreign_scope=self.config.purge_foreign_scope,
            )
        return self._reconciler
