from kestrel.commands.builder import build_category_command, build_subcommand
from kestrel.commands.definition import CommandDefinition, OptionKind, OptionSpec


async def execute(bot, invocation, prefix, config, option_data):
    return None


def definition(name="help", options=()):
    return CommandDefinition(name=name, description=f"{name} description", execute=execute, options=tuple(options))


def test_subcommand_keeps_option_order_and_types():
    payload = build_subcommand(
        definition(
            "Help",
            [
                OptionSpec(OptionKind.STRING, "category", "Category"),
                OptionSpec(OptionKind.USER, "target", "User", required=True),
                OptionSpec(OptionKind.ATTACHMENT, "file", "File"),
            ],
        )
    )

    assert payload == {
        "type": 1,
        "name": "help",
        "description": "Help description",
        "options": [
            {"type": 3, "name": "category", "description": "Category", "required": False},
            {"type": 6, "name": "target", "description": "User", "required": True},
            {"type": 11, "name": "file", "description": "File", "required": False},
        ],
    }


def test_category_command_wraps_subcommands():
    payload = build_category_command([definition("help"), definition("info")], "Misc")

    assert payload["type"] == 1
    assert payload["name"] == "misc"
    assert payload["description"] == "Misc commands"
    assert [option["name"] for option in payload["options"]] == ["help", "info"]
    assert all(option["type"] == 1 for option in payload["options"])


def test_subcommand_without_options_has_empty_list():
    assert build_subcommand(definition("ping"))["options"] == []
