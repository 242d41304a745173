"""Daily backup of the stored collections to a Discord channel.

Once a day at the configured ``HH:MM`` (local time) the job:

1. clears the guild settings cache,
2. writes every configured collection to ``<name>.json``,
3. archives those files plus the source directory into ``files.tar.gz``,
4. uploads the archive to the backup channel as ``"<bot tag> - Backup"``,
5. deletes the local artifacts, whether or not the previous steps succeeded.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import tarfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import discord

from kestrel.configuration.app_configuration import AppConfig, app_config
from kestrel.configuration.guild_settings import GuildSettingsCache, guild_settings_cache
from kestrel.database.document_store import DocumentStore, document_store
from kestrel.util.error_reporter import ErrorReporter, error_reporter
from kestrel.util.logger import get_logger

logger = get_logger("backup_scheduler")

ARCHIVE_NAME = "files.tar.gz"


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """Parse ``"HH:MM"`` into ``(hour, minute)``.

    Raises:
        ValueError: If the value is not a valid 24-hour time.
    """
    try:
        hour_text, minute_text = value.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid backup time {value!r}, expected HH:MM") from None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid backup time {value!r}, expected HH:MM")
    return hour, minute


def seconds_until(time_of_day: str, now: datetime.datetime) -> float:
    """Seconds from ``now`` until the next occurrence of ``time_of_day``."""
    hour, minute = parse_time_of_day(time_of_day)
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += datetime.timedelta(days=1)
    return (target - now).total_seconds()


async def dump_collections(store: DocumentStore, collections: Sequence[str], work_dir: Path) -> List[Path]:
    """Write each collection's documents to ``<work_dir>/<name>.json``."""
    paths: List[Path] = []
    for name in collections:
        documents = await store.find(name, {})
        path = work_dir / f"{name}.json"
        await asyncio.to_thread(path.write_text, json.dumps(documents, default=str), "utf-8")
        paths.append(path)
    return paths


def build_archive(files: Sequence[Path], source_dir: Optional[Path], archive_path: Path) -> Path:
    with tarfile.open(archive_path, "w:gz") as archive:
        for path in files:
            archive.add(path, arcname=path.name)
        if source_dir is not None and source_dir.exists():
            archive.add(source_dir, arcname=source_dir.name)
        elif source_dir is not None:
            logger.warning("[BACKUP] Source directory %s does not exist; not archived", source_dir)
    return archive_path


def remove_files(paths: Sequence[Path]) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("[BACKUP] Could not remove %s: %s", path, exc)


class BackupScheduler:
    """
    Runs the backup job once a day at the configured time.

    Args:
        store: Document store the collections are read from.
        settings_cache: Cache cleared before the dump so it re-reads fresh data.
        config: Source of the backup channel, time, collections and source dir.
        work_dir: Directory the temporary JSON files and archive are written to.
        clock: Returns the current local time; the schedule is computed from it.
        reporter: Error-log channel that receives failures of the job.
    """

    def __init__(
        self,
        store: DocumentStore = document_store,
        settings_cache: GuildSettingsCache = guild_settings_cache,
        config: AppConfig = app_config,
        work_dir: Path = Path("."),
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
        reporter: ErrorReporter = error_reporter,
    ) -> None:
        self._store = store
        self._settings_cache = settings_cache
        self._config = config
        self._work_dir = work_dir
        self._clock = clock
        self._reporter = reporter
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _backup_channel(self, bot: discord.Client, channel_id: Optional[int]) -> Optional[discord.abc.Messageable]:
        if channel_id is None:
            return None
        channel = bot.get_channel(channel_id)
        if channel is None or not hasattr(channel, "send"):
            return None
        return channel

    async def run_backup(self, bot: discord.Client) -> bool:
        """Run the job once; returns True if the archive was uploaded."""
        settings = self._config.backup
        archive_path = self._work_dir / ARCHIVE_NAME
        artifacts: List[Path] = [self._work_dir / f"{name}.json" for name in settings.collections]
        artifacts.append(archive_path)

        try:
            self._settings_cache.clear()
            files = await dump_collections(self._store, settings.collections, self._work_dir)
            await asyncio.to_thread(build_archive, files, Path(settings.source_dir), archive_path)

            channel = self._backup_channel(bot, settings.channel_id)
            if channel is None or bot.user is None:
                logger.warning("[BACKUP] Backup channel %s unavailable; archive not uploaded", settings.channel_id)
                return False

            with archive_path.open("rb") as fp:
                await channel.send(
                    content=f"{bot.user} - Backup",
                    file=discord.File(fp, filename=ARCHIVE_NAME),
                )
            logger.info("[BACKUP] Uploaded backup of %d collections", len(files))
            return True
        except Exception as exc:
            logger.error("[BACKUP] Error creating backup: %s", exc, exc_info=exc)
            await self._reporter.report(exc)
            return False
        finally:
            await asyncio.to_thread(remove_files, artifacts)

    async def _run_loop(self, bot: discord.Client) -> None:
        """Infinite loop: sleep until the backup time, back up, repeat."""
        try:
            while True:
                delay = seconds_until(self._config.backup.time, self._clock())
                logger.info("[BACKUP] Next backup in %.0fs", delay)
                await asyncio.sleep(delay)
                await self.run_backup(bot)
        except asyncio.CancelledError:
            logger.info("[BACKUP] Backup schedule cancelled")
            raise

    def start(self, bot: discord.Client) -> bool:
        """Start the background task if not already running; returns True if started."""
        if self.running:
            logger.warning("[BACKUP] Backup task already running")
            return False
        try:
            parse_time_of_day(self._config.backup.time)
        except ValueError as exc:
            logger.error("[BACKUP] %s; backups disabled", exc)
            return False
        self._task = asyncio.create_task(self._run_loop(bot), name="kestrel-backup-scheduler")
        return True

    async def shutdown(self) -> None:
        """Stop the task if running."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[BACKUP] Scheduler shutdown complete")


# Shared application-wide scheduler
backup_scheduler = BackupScheduler()
