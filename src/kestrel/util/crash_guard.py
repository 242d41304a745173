"""Process-level last-resort handlers: log and keep running."""

from __future__ import annotations

import asyncio
import sys
import warnings
from typing import Any, Dict

from kestrel.util.logger import get_logger, handle_exception

logger = get_logger("crash_guard")


def loop_exception_handler(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Log exceptions nobody awaited (the asyncio analogue of unhandled rejections)."""
    exception = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exception is not None:
        logger.error("[CRASH GUARD] %s: %s", message, exception, exc_info=exception)
    else:
        logger.error("[CRASH GUARD] %s", message)


def _log_warning(message, category, filename, lineno, file=None, line=None) -> None:
    logger.warning("[CRASH GUARD] %s: %s (%s:%s)", category.__name__, message, filename, lineno)


def install_crash_guards(loop: asyncio.AbstractEventLoop) -> None:
    """Route uncaught exceptions, orphaned task errors and warnings to the log."""
    sys.excepthook = handle_exception
    loop.set_exception_handler(loop_exception_handler)
    warnings.showwarning = _log_warning
    logger.debug("[CRASH GUARD] Installed")
