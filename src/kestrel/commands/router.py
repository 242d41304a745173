"""
Routes live text messages and slash interactions to command definitions.

Text: ``<prefix><command> args...`` or ``@Bot <command> args...``, where the
prefix is the guild's configured one or the global default.
Slash: ``/<category> <command> [options]``; the subcommand name selects the
definition.

Every handler failure is contained here: it is logged, posted to the error
channel and answered with a generic error embed.
"""

from __future__ import annotations

import inspect
import re
import time
from typing import Any, Callable, Dict, Optional, Tuple

import discord

from kestrel.commands.definition import CommandDefinition
from kestrel.commands.loader import CommandRegistry
from kestrel.configuration.app_configuration import AppConfig
from kestrel.configuration.guild_settings import GuildSettingsCache
from kestrel.util import discord_utils
from kestrel.util.embeds import error_embed
from kestrel.util.error_reporter import ErrorReporter
from kestrel.util.logger import get_logger

logger = get_logger("command_router")

SLASH_PREFIX = "/"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CooldownTracker:
    """Per-user, per-command cooldowns measured on a monotonic clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._last_used: Dict[Tuple[str, int], float] = {}

    def remaining(self, command: CommandDefinition, user_id: int) -> float:
        if command.cooldown <= 0:
            return 0.0
        last = self._last_used.get((command.key, user_id))
        if last is None:
            return 0.0
        return max(0.0, last + command.cooldown - self._clock())

    def touch(self, command: CommandDefinition, user_id: int) -> None:
        if command.cooldown > 0:
            self._last_used[(command.key, user_id)] = self._clock()


class DispatchRouter:
    """Resolves invocations against the registry and runs the matching command."""

    def __init__(
        self,
        bot: discord.Bot,
        registry: CommandRegistry,
        settings_cache: GuildSettingsCache,
        config: AppConfig,
        reporter: ErrorReporter,
        cooldowns: Optional[CooldownTracker] = None,
    ) -> None:
        self.bot = bot
        self.registry = registry
        self.settings_cache = settings_cache
        self.config = config
        self.reporter = reporter
        self.cooldowns = cooldowns or CooldownTracker()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _mention_pattern(self) -> Optional[re.Pattern[str]]:
        user = self.bot.user
        if user is None:
            return None
        return re.compile(rf"^<@!?{user.id}>\s*")

    def extract_text_command(self, content: str, prefix: str) -> Optional[str]:
        """Return the command token of ``content`` or None when it is not addressed to the bot."""
        content = content.strip()
        mention = self._mention_pattern()
        if mention is not None and (match := mention.match(content)):
            words = content[match.end():].split()
            return words[0].lower() if words else None

        words = content.split()
        if not words or not words[0].lower().startswith(prefix.lower()):
            return None
        token = words[0][len(prefix):]
        return token.lower() or None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_message(self, message: discord.Message) -> bool:
        """Dispatch a text command; returns True if a command was run."""
        if message.guild is None or getattr(message.author, "bot", False):
            return False

        prefix = await self.settings_cache.get_prefix(message.guild.id, self.config.default_prefix)
        token = self.extract_text_command(message.content or "", prefix)
        definition = self.registry.resolve(token)
        if definition is None:
            return False

        return await self._run(definition, message, prefix, slash=False)

    async def handle_interaction(self, interaction: discord.Interaction) -> bool:
        """Dispatch a slash subcommand; returns True if a command was run."""
        if interaction.type != discord.InteractionType.application_command or interaction.guild_id is None:
            return False

        definition = self.registry.resolve(discord_utils.get_subcommand_name(interaction))
        if definition is None:
            return False

        return await self._run(definition, interaction, SLASH_PREFIX, slash=True)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run(self, definition: CommandDefinition, invocation: Any, prefix: str, *, slash: bool) -> bool:
        user = discord_utils.invocation_user(invocation)
        remaining = self.cooldowns.remaining(definition, user.id)
        if remaining > 0:
            await self._send_error(
                invocation,
                f"Please wait {remaining:.1f}s before using `{definition.name}` again.",
                prefix,
            )
            return True
        self.cooldowns.touch(definition, user.id)

        try:
            extractor = definition.slash_extract if slash else definition.text_extract
            option_data: Any = {}
            if extractor is not None:
                option_data = await _maybe_await(extractor(invocation, self.bot))
            await _maybe_await(definition.execute(self.bot, invocation, prefix, self.config, option_data))
        except Exception as exc:
            logger.error("[ROUTER] Command '%s' failed: %s", definition.name, exc, exc_info=exc)
            await self.reporter.report(exc)
            await self._send_error(invocation, "Unexpected Error", prefix)
        return True

    async def _send_error(self, invocation: Any, message: str, prefix: str) -> None:
        try:
            await discord_utils.reply(invocation, embed=error_embed(message, prefix, self.config))
        except Exception as exc:
            logger.warning("[ROUTER] Could not send error reply: %s", exc)
