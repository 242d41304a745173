"""
Logging for Kestrel.

Every module obtains its logger through :func:`get_logger`. Each logger writes
to two places:

- the terminal, through prompt_toolkit, coloured by level when stderr is a TTY
  (console level from ``KESTREL_LOG_LEVEL``, default INFO),
- one rotating file per process under ``logs/`` (everything from DEBUG up).
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

LOGS_DIR: Path = Path(os.getenv("KESTREL_LOG_DIR") or Path(__file__).parents[3] / "logs").resolve()

LINE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# prompt_toolkit style per level
LEVEL_STYLES = {
    logging.DEBUG: "ansicyan",
    logging.INFO: "ansigreen",
    logging.WARNING: "ansiyellow",
    logging.ERROR: "ansired",
    logging.CRITICAL: "ansired bold",
}

NOISY_LOGGERS = (
    "discord", "discord.gateway", "discord.client", "discord.http",
    "websockets", "aiohttp", "aiosqlite", "asyncio",
)

line_formatter = logging.Formatter(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT)

_session_log: Path | None = None


def should_use_color() -> bool:
    """True when stderr is attached to a terminal."""
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


class ConsoleHandler(logging.Handler):
    """
    Handler printing through prompt_toolkit so log lines do not break an
    active prompt session.

    Args:
        colour: Style each line by level (see :data:`LEVEL_STYLES`).
    """

    def __init__(self, colour: bool = False):
        super().__init__()
        self.colour = colour
        self.setFormatter(line_formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            style = LEVEL_STYLES.get(record.levelno, "") if self.colour else ""
            print_formatted_text(FormattedText([(style, self.format(record))]))
        except Exception:
            self.handleError(record)


def get_log_filepath() -> Path:
    """The log file of this process; all loggers share it."""
    global _session_log

    if _session_log is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        _session_log = LOGS_DIR / f"kestrel-{datetime.now():%Y%m%d-%H%M%S}.log"
    return _session_log


def console_level() -> int:
    level = logging.getLevelName(os.getenv("KESTREL_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and file handlers to ``logger_name`` once and return it."""
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = ConsoleHandler(colour=should_use_color())
    console.setLevel(console_level())
    logger.addHandler(console)

    log_file = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    log_file.setLevel(logging.DEBUG)
    log_file.setFormatter(line_formatter)
    logger.addHandler(log_file)

    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Retrieve a logger configured for Kestrel, creating it if necessary."""
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement: log the exception, let Ctrl+C behave normally."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


def quiet_noisy_loggers(names=NOISY_LOGGERS, level: int = logging.ERROR) -> None:
    """Raise third-party loggers to ``level`` and drop the handlers they installed."""
    for name in names:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(level)
        library_logger.propagate = False
        library_logger.handlers = []


quiet_noisy_loggers()
