from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

import kestrel.definitions
from kestrel.commands.loader import load_commands
from kestrel.commands.lookup import find_category, find_command, help_categories
from kestrel.definitions.config import prefix as prefix_command
from kestrel.definitions.misc import help as help_command
from kestrel.definitions.misc import info as info_command

DEFINITIONS_DIR = Path(kestrel.definitions.__file__).parent

CATEGORIES = """
categories:
  - name: misc
    description: General purpose commands
    aliases: [general]
  - name: config
    description: Per-server configuration
    aliases: [settings]
links:
  support: https://discord.gg/example
"""


@pytest.fixture
def config(app_config_factory):
    return app_config_factory(CATEGORIES)


@pytest_asyncio.fixture
async def registry():
    return await load_commands(DEFINITIONS_DIR)


@pytest.fixture
def make_bot(config):
    def build(registry, prefix=">"):
        return SimpleNamespace(
            user=SimpleNamespace(id=999),
            registry=registry,
            config=config,
            settings_cache=SimpleNamespace(
                get_prefix=AsyncMock(return_value=prefix),
                set_prefix=AsyncMock(),
            ),
            guilds=[SimpleNamespace(member_count=10), SimpleNamespace(member_count=None)],
            latency=0.05,
        )

    return build


def make_message(content, *, manage_guild=False):
    return SimpleNamespace(
        content=content,
        guild=SimpleNamespace(id=1),
        author=SimpleNamespace(
            id=5,
            guild_permissions=SimpleNamespace(manage_guild=manage_guild, administrator=False),
        ),
        created_at=None,
        reply=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_shipped_definitions_load(registry):
    assert registry.rejected == []
    assert sorted(registry.commands) == ["help", "info", "prefix"]
    assert registry.resolve("halp").name == "help"
    assert registry.resolve("botstats").name == "info"
    assert set(registry.slash_targets) == {"config", "misc"}


@pytest.mark.asyncio
async def test_lookups(registry, config):
    assert find_command("H", registry).name == "help"
    assert find_command(None, registry) is None
    assert find_category("General", config, registry).name == "misc"
    assert find_category("settings", config, registry).name == "config"
    assert find_category("nothing", config, registry) is None
    assert [info.name for info in help_categories(config, registry)] == ["misc", "config"]


@pytest.mark.asyncio
async def test_unconfigured_categories_still_listed(registry, empty_config):
    assert [info.name for info in help_categories(empty_config, registry)] == ["config", "misc"]


@pytest.mark.asyncio
async def test_hidden_categories_are_not_found(registry, app_config_factory):
    config = app_config_factory("categories:\n  - name: config\n    hidden: true\n")

    assert find_category("config", config, registry) is None
    assert find_category("config", config, registry, include_hidden=True).name == "config"


@pytest.mark.asyncio
async def test_help_text_extract(registry, make_bot):
    bot = make_bot(registry)

    assert help_command.text_extract(make_message(">help"), bot) == {}
    assert help_command.text_extract(make_message(">help botinfo"), bot)["command"].name == "info"
    assert help_command.text_extract(make_message(">help general"), bot)["category"].name == "misc"
    assert help_command.text_extract(make_message(">help nope"), bot) == {"unknown": "nope"}
    assert help_command.text_extract(make_message("<@999> help botinfo"), bot)["command"].name == "info"
    assert help_command.text_extract(make_message("<@999> help"), bot) == {}


@pytest.mark.asyncio
async def test_help_pages_rotate_to_selected_category(registry, make_bot, config):
    bot = make_bot(registry)
    selected = find_category("config", config, registry)

    pages = help_command.help_pages(bot, ">", config, selected)

    assert [page.title for page in pages] == ["Config commands", "Help", "Misc commands"]
    assert "`>help misc`" in pages[1].description


@pytest.mark.asyncio
async def test_help_for_unknown_token_replies_with_error(registry, make_bot, config):
    message = make_message(">help nope")

    await help_command.execute(make_bot(registry), message, ">", config, {"unknown": "nope"})

    embed = message.reply.await_args.kwargs["embed"]
    assert embed.title == "Uh oh! :x:"
    assert "`nope`" in embed.description


@pytest.mark.asyncio
async def test_help_for_command_shows_details(registry, make_bot, config):
    message = make_message(">help help")

    await help_command.execute(make_bot(registry), message, ">", config, {"command": registry.resolve("help")})

    embed = message.reply.await_args.kwargs["embed"]
    fields = {field.name: field.value for field in embed.fields}
    assert embed.title == ">help"
    assert fields["Aliases"] == "`h`, `halp`"
    assert fields["Cooldown"] == "2s"
    assert "Invite" in fields["Links"]


@pytest.mark.asyncio
async def test_help_overview_is_paginated(registry, make_bot, config, monkeypatch):
    paginate = AsyncMock()
    monkeypatch.setattr(help_command, "send_paginated", paginate)
    message = make_message(">help")

    await help_command.execute(make_bot(registry), message, "/", config, {})

    invocation, pages, user_id = paginate.await_args.args
    assert invocation is message
    assert user_id == 5
    assert [page.title for page in pages] == ["Help", "Misc commands", "Config commands"]


@pytest.mark.asyncio
async def test_prefix_shows_current_prefix(registry, make_bot, config):
    bot = make_bot(registry, prefix="!")
    message = make_message("!prefix")

    await prefix_command.execute(bot, message, "!", config, {})

    assert "`!`" in message.reply.await_args.kwargs["embed"].description
    bot.settings_cache.set_prefix.assert_not_awaited()


@pytest.mark.asyncio
async def test_prefix_change_requires_manage_server(registry, make_bot, config):
    bot = make_bot(registry)
    message = make_message(">prefix !")

    await prefix_command.execute(bot, message, ">", config, prefix_command.text_extract(message, bot))

    assert "Manage Server" in message.reply.await_args.kwargs["embed"].description
    bot.settings_cache.set_prefix.assert_not_awaited()


@pytest.mark.asyncio
async def test_prefix_change_is_persisted(registry, make_bot, config):
    bot = make_bot(registry)
    message = make_message(">prefix !", manage_guild=True)

    await prefix_command.execute(bot, message, ">", config, {"prefix": "!"})

    bot.settings_cache.set_prefix.assert_awaited_once_with(1, "!")
    assert message.reply.await_args.kwargs["embed"].title == "Prefix updated"


@pytest.mark.asyncio
async def test_invalid_prefix_is_reported(registry, make_bot, config):
    bot = make_bot(registry)
    bot.settings_cache.set_prefix.side_effect = ValueError("Prefix must be 1-5 characters without spaces")
    message = make_message(">prefix waytoolong", manage_guild=True)

    await prefix_command.execute(bot, message, ">", config, {"prefix": "waytoolong"})

    assert "1-5 characters" in message.reply.await_args.kwargs["embed"].description


@pytest.mark.asyncio
async def test_info_reports_and_updates_cpu(registry, make_bot, config, monkeypatch):
    monkeypatch.setattr(info_command, "CPU_SAMPLE_SECONDS", 0)
    sent = SimpleNamespace(edit=AsyncMock())
    message = make_message(">info")
    message.reply = AsyncMock(return_value=sent)

    await info_command.execute(make_bot(registry), message, ">", config, {})

    first = {field.name: field.value for field in message.reply.await_args.kwargs["embed"].fields}
    final = {field.name: field.value for field in sent.edit.await_args.kwargs["embed"].fields}
    assert first["Servers"] == "2"
    assert first["Users"] == "10"
    assert first["API ping"] == "50 ms"
    assert first["CPU"] == "Measuring..."
    assert final["CPU"].endswith("%")


def test_info_stats_with_unknown_latency():
    bot = SimpleNamespace(guilds=[], latency=float("nan"))

    stats = info_command.collect_stats(bot)

    assert stats["api_ping_ms"] is None
    assert stats["memory_mb"] > 0
