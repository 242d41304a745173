"""Bot statistics: reach, latency and resource usage."""

from __future__ import annotations

import asyncio
import datetime
import math
from typing import Any, Dict

import discord
import psutil

from kestrel.configuration.app_configuration import AppConfig
from kestrel.util import discord_utils
from kestrel.util.embeds import apply_embed_structure
from kestrel.util.logger import get_logger

logger = get_logger("info_command")

# CPU usage is sampled over this window before the reply is edited
CPU_SAMPLE_SECONDS = 5


def collect_stats(bot: Any) -> Dict[str, Any]:
    guilds = list(bot.guilds)
    process = psutil.Process()
    return {
        "guilds": len(guilds),
        "users": sum(guild.member_count or 0 for guild in guilds),
        "api_ping_ms": None if math.isnan(bot.latency) else round(bot.latency * 1000),
        "memory_mb": process.memory_info().rss / (1024 * 1024),
    }


def _message_latency_ms(invocation: Any) -> int | None:
    created_at = getattr(invocation, "created_at", None)
    if created_at is None:
        return None
    delta = datetime.datetime.now(datetime.timezone.utc) - created_at
    return max(0, round(delta.total_seconds() * 1000))


def stats_embed(stats: Dict[str, Any], prefix: str, config: AppConfig, cpu: str) -> discord.Embed:
    embed = discord.Embed(title="Bot information")
    embed.add_field(name="Prefix", value=f"`{prefix}`", inline=True)
    embed.add_field(name="Servers", value=f"{stats['guilds']:,}", inline=True)
    embed.add_field(name="Users", value=f"{stats['users']:,}", inline=True)
    ping = stats.get("api_ping_ms")
    embed.add_field(name="API ping", value=f"{ping} ms" if ping is not None else "Unknown", inline=True)
    latency = stats.get("latency_ms")
    embed.add_field(name="Latency", value=f"{latency} ms" if latency is not None else "Unknown", inline=True)
    embed.add_field(name="Memory", value=f"{stats['memory_mb']:.1f} MB", inline=True)
    embed.add_field(name="CPU", value=cpu, inline=True)
    return apply_embed_structure(embed, prefix, config)


async def execute(bot: Any, invocation: Any, prefix: str, config: AppConfig, option_data: Dict[str, Any]) -> None:
    stats = collect_stats(bot)
    stats["latency_ms"] = _message_latency_ms(invocation)

    process = psutil.Process()
    process.cpu_percent(interval=None)
    message = await discord_utils.reply(invocation, embed=stats_embed(stats, prefix, config, "Measuring..."))

    await asyncio.sleep(CPU_SAMPLE_SECONDS)
    cpu = f"{process.cpu_percent(interval=None):.1f}%"
    if message is None:
        return
    try:
        await message.edit(embed=stats_embed(stats, prefix, config, cpu))
    except discord.HTTPException as exc:
        logger.warning("[INFO] Could not update statistics message: %s", exc)


command = {
    "name": "info",
    "description": "Statistics about the bot",
    "usage": "info",
    "aliases": ["botstats", "botinfo"],
    "cooldown": 5,
    "execute": execute,
}
