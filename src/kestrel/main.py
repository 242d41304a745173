"""
Kestrel
=======

Entry point of the bot: loads the command definition tree, opens the settings
database and runs the Discord client until it disconnects or is interrupted.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Directory holding ``config/``, ``data/`` and ``.env``.

    ``KESTREL_HOME`` wins when set; a frozen build uses the directory of its
    executable; a source checkout uses the repository root.
    """
    if home := os.getenv("KESTREL_HOME"):
        return Path(home).resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parents[2]


# Relative paths in app_config.yml are resolved against the base directory.
BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from kestrel.bot.kestrel_bot import KestrelBot
from kestrel.commands.loader import CommandRegistry, load_commands
from kestrel.configuration.app_configuration import app_config
from kestrel.database.db_connection import db_connection
from kestrel.database.document_store import document_store
from kestrel.scheduler.backup_scheduler import backup_scheduler
from kestrel.util.crash_guard import install_crash_guards
from kestrel.util.error_reporter import error_reporter
from kestrel.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Read ``.env`` and return ``DISCORD_BOT_TOKEN``.

    Raises
    ------
    SystemExit
        With code 1 when no token is configured.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if token:
        return token
    logger.critical("DISCORD_BOT_TOKEN is not set; refusing to start")
    sys.exit(1)


def build_intents() -> discord.Intents:
    """Gateway intents for guild events and prefixed text commands."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    intents.message_content = True
    return intents


def create_bot(registry: CommandRegistry) -> KestrelBot:
    """Build the client, attach the listener cogs and point the error reporter at it."""
    from kestrel.bot.cogs import command_listener, events_listener

    bot = KestrelBot(registry, config=app_config, intents=build_intents())
    for cog_module in (events_listener, command_listener):
        cog_module.setup(bot)
    logger.info("Cogs attached: events_listener, command_listener")

    error_reporter.bind(bot, app_config.error_log_channel_id)
    return bot


async def open_storage() -> bool:
    """Open the SQLite database and create the document tables."""
    logger.info("Opening database at %s", app_config.database_path)
    try:
        await db_connection.open(app_config.database_path)
        await document_store.initialize()
    except Exception as exc:
        logger.critical("Database unavailable: %s", exc)
        await db_connection.close()
        return False
    return True


async def run_client(bot: discord.Bot, token: str) -> int:
    """Run the gateway connection; returns the process exit code."""
    logger.info("Connecting to Discord...")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Client task cancelled")
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        return 1
    except Exception as exc:
        logger.critical("Client stopped with an error: %s", exc)
        return 1
    return 0


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Stop the backup scheduler, the client and the database, in that order.

    A failure in one step is logged and does not prevent the next.
    """
    steps = [("backup scheduler", backup_scheduler.shutdown)]
    if bot is not None and not bot.is_closed():
        steps.append(("Discord client", bot.close))
    steps.append(("database", db_connection.close))

    for label, close in steps:
        try:
            await close()
        except Exception as exc:
            logger.exception("Failed to stop %s: %s", label, exc)
        else:
            logger.debug("Stopped %s", label)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    token = load_environment()
    install_crash_guards(asyncio.get_running_loop())

    if not await open_storage():
        return 1

    registry = await load_commands(app_config.commands_dir)

    try:
        bot = create_bot(registry)
    except Exception as exc:
        logger.critical("Could not build the Discord client: %s", exc)
        await shutdown_runtime()
        return 1

    try:
        return await run_client(bot, token)
    finally:
        await shutdown_runtime(bot)


def main() -> int:
    """Console entry point; returns the process exit code."""
    logger.info("Starting Kestrel")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 0
    except SystemExit as exit_exc:
        return exit_exc.code if isinstance(exit_exc.code, int) else 1
    except Exception as exc:
        logger.critical("Unhandled error in the runtime: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
