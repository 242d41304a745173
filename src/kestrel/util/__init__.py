"""
Utility functions and helpers for Kestrel.

- **logger.py**: Coloured console plus rotating file logging.
- **discord_utils.py**: Helpers that hide the message/interaction difference.
- **embeds.py**: Standard embed styling and the error embed.
- **error_reporter.py**: Error-channel reporting with log fallback.
- **crash_guard.py**: Process-wide handlers for otherwise unhandled errors.
- **stats_poster.py**: Server-count posting to top.gg.
"""
