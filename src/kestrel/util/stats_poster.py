"""Posts the bot's server count to top.gg."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import aiohttp

from kestrel.util.logger import get_logger

logger = get_logger("stats_poster")

TOP_GG_STATS_URL = "https://top.gg/api/bots/{bot_id}/stats"
REQUEST_TIMEOUT_SECONDS = 10


async def post_server_count(bot_id: int, server_count: int, token: Optional[str] = None) -> bool:
    """POST ``server_count`` for ``bot_id``; returns True on HTTP 200.

    The token defaults to the ``TOP_GG_TOKEN`` environment variable. Network
    failures and non-200 answers are logged, never raised.
    """
    token = token or os.getenv("TOP_GG_TOKEN")
    if not token:
        logger.warning("[TOP.GG] TOP_GG_TOKEN is not set; stats not posted")
        return False

    url = TOP_GG_STATS_URL.format(bot_id=bot_id)
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                url,
                json={"server_count": server_count},
                headers={"Authorization": token},
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.error("[TOP.GG] Posting stats failed with status %s: %s", response.status, body)
                    return False
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.error("[TOP.GG] Posting stats failed: %s", exc)
        return False

    logger.info("[TOP.GG] Posted server count %d", server_count)
    return True
