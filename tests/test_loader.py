from pathlib import Path
from textwrap import dedent

import pytest

from kestrel.commands.loader import CommandRegistry, load_commands

VALID_TEMPLATE = dedent(
    """
    async def execute(bot, invocation, prefix, config, option_data):
        return None

    command = {{
        "name": "{name}",
        "description": "{name} command",
        "aliases": {aliases!r},
        "execute": execute,
    }}
    """
)


def write_command(directory: Path, name: str, aliases=(), file_name=None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (file_name or f"{name}.py")
    path.write_text(VALID_TEMPLATE.format(name=name, aliases=list(aliases)), encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_one_malformed_file_does_not_block_the_rest(tmp_path: Path):
    misc = tmp_path / "misc"
    for name in ("alpha", "bravo", "charlie", "delta"):
        write_command(misc, name)
    broken = misc / "echo.py"
    broken.write_text('command = {"name": "echo"}\n', encoding="utf-8")

    registry = await load_commands(tmp_path)

    assert sorted(registry.commands) == ["alpha", "bravo", "charlie", "delta"]
    assert [path for path, _ in registry.rejected] == [broken]
    assert [option["name"] for option in registry.slash_targets["misc"]["options"]] == [
        "alpha",
        "bravo",
        "charlie",
        "delta",
    ]


@pytest.mark.asyncio
async def test_import_errors_and_missing_export_are_rejected(tmp_path: Path):
    misc = tmp_path / "misc"
    write_command(misc, "good")
    (misc / "syntax.py").write_text("def broken(:\n", encoding="utf-8")
    (misc / "empty.py").write_text("value = 1\n", encoding="utf-8")

    registry = await load_commands(tmp_path)

    assert list(registry.commands) == ["good"]
    assert sorted(path.name for path, _ in registry.rejected) == ["empty.py", "syntax.py"]


@pytest.mark.asyncio
async def test_underscore_files_and_directories_are_skipped(tmp_path: Path):
    write_command(tmp_path / "misc", "help")
    (tmp_path / "misc" / "__init__.py").write_text("", encoding="utf-8")
    (tmp_path / "misc" / "_shared.py").write_text("raise RuntimeError('not a command')\n", encoding="utf-8")
    write_command(tmp_path / "__pycache__", "ghost")

    registry = await load_commands(tmp_path)

    assert list(registry.commands) == ["help"]
    assert registry.rejected == []
    assert list(registry.slash_targets) == ["misc"]


@pytest.mark.asyncio
async def test_aliases_resolve_case_insensitively(tmp_path: Path):
    write_command(tmp_path / "misc", "help", aliases=["h", "halp"])

    registry = await load_commands(tmp_path)

    assert registry.resolve("HELP").name == "help"
    assert registry.resolve("Halp").name == "help"
    assert registry.resolve("unknown") is None
    assert registry.resolve(None) is None


@pytest.mark.asyncio
async def test_duplicate_names_keep_first_file(tmp_path: Path):
    first = write_command(tmp_path / "config", "ping")
    write_command(tmp_path / "misc", "ping", file_name="ping.py")

    registry = await load_commands(tmp_path)

    assert registry.commands["ping"].source == str(first)
    assert len(registry.rejected) == 1
    assert "duplicate" in registry.rejected[0][1]
    assert "misc" not in registry.slash_targets


@pytest.mark.asyncio
async def test_conflicting_alias_keeps_first_owner(tmp_path: Path):
    write_command(tmp_path / "misc", "alpha", aliases=["a"])
    write_command(tmp_path / "misc", "another", aliases=["a", "an"])

    registry = await load_commands(tmp_path)

    assert registry.aliases == {"a": "alpha", "an": "another"}


@pytest.mark.asyncio
async def test_missing_root_gives_empty_registry(tmp_path: Path):
    registry = await load_commands(tmp_path / "nope")

    assert registry == CommandRegistry()


@pytest.mark.asyncio
async def test_categories_and_listing(tmp_path: Path):
    write_command(tmp_path / "misc", "info")
    write_command(tmp_path / "misc", "help")
    write_command(tmp_path / "Config", "prefix")

    registry = await load_commands(tmp_path)

    assert registry.categories == ["Config", "misc"]
    assert [command.name for command in registry.in_category("MISC")] == ["help", "info"]
    assert set(registry.slash_targets) == {"config", "misc"}
    assert registry.slash_targets["config"]["name"] == "config"
