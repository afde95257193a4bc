import sys
import types

import pytest
from typer.testing import CliRunner

from tgpoll import __version__, cli
from tgpoll.config import ENV_BOT_TOKEN
from tgpoll.errors import ConfigError, TelegramNetworkError


def _start(bot, msg):
    return None


@pytest.fixture
def commands_module(monkeypatch) -> str:
    module = types.ModuleType("fake_bot_commands")
    module.COMMANDS = {"/start": _start}
    module.build = lambda: {"/start": _start}
    module.not_a_table = 42
    monkeypatch.setitem(sys.modules, "fake_bot_commands", module)
    return "fake_bot_commands"


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv(ENV_BOT_TOKEN, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_logging", lambda debug=False: None)
    monkeypatch.setattr(
        "tgpoll.config.HOME_CONFIG_PATH", tmp_path / "missing" / "tgpoll.toml"
    )


def test_version() -> None:
    result = CliRunner().invoke(cli.create_app(), ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_load_commands_mapping(commands_module) -> None:
    assert cli.load_commands(f"{commands_module}:COMMANDS") == {"/start": _start}


def test_load_commands_factory(commands_module) -> None:
    assert cli.load_commands(f"{commands_module}:build") == {"/start": _start}


@pytest.mark.parametrize(
    ("target", "message"),
    [
        ("no_colon", "expected `module:attribute`"),
        ("fake_bot_commands:missing", "has no attribute"),
        ("fake_bot_commands:not_a_table", "expected a mapping"),
        ("definitely_not_a_module_xyz:COMMANDS", "Failed to import"),
    ],
)
def test_load_commands_errors(commands_module, target, message) -> None:
    with pytest.raises(ConfigError, match=message):
        cli.load_commands(target)


def test_run_invokes_bot(monkeypatch, commands_module) -> None:
    captured = {}

    async def _fake_run(settings, commands):
        captured["settings"] = settings
        captured["commands"] = commands

    monkeypatch.setattr(cli, "_run_bot", _fake_run)

    result = CliRunner().invoke(
        cli.create_app(),
        ["run", f"{commands_module}:COMMANDS", "--token", "123:abc"],
    )

    assert result.exit_code == 0, result.output
    assert captured["settings"].bot_token == "123:abc"
    assert captured["commands"] == {"/start": _start}


def test_run_without_token_fails(commands_module) -> None:
    result = CliRunner().invoke(
        cli.create_app(), ["run", f"{commands_module}:COMMANDS"]
    )

    assert result.exit_code == 1
    assert "error: Missing bot token" in result.output


def test_run_with_bad_target_fails() -> None:
    result = CliRunner().invoke(
        cli.create_app(), ["run", "nope", "--token", "123:abc"]
    )

    assert result.exit_code == 1
    assert "error: Invalid target" in result.output


def test_run_exits_on_transport_failure(monkeypatch, commands_module) -> None:
    async def _failing_run(settings, commands):
        raise TelegramNetworkError("getupdates failed", method="getupdates")

    monkeypatch.setattr(cli, "_run_bot", _failing_run)

    result = CliRunner().invoke(
        cli.create_app(),
        ["run", f"{commands_module}:COMMANDS", "--token", "123:abc"],
    )

    assert result.exit_code == 1


def test_get_me(monkeypatch) -> None:
    async def _fake_get_me(settings):
        assert settings.bot_token == "123:abc"
        return {
            "ok": True,
            "result": {"id": 99, "username": "tgpoll_bot", "first_name": "Poll"},
        }

    monkeypatch.setattr(cli, "_get_me", _fake_get_me)

    result = CliRunner().invoke(cli.create_app(), ["get-me", "--token", "123:abc"])

    assert result.exit_code == 0, result.output
    assert "id: 99" in result.output
    assert "username: @tgpoll_bot" in result.output
    assert "name: Poll" in result.output


def test_get_me_without_result_fails(monkeypatch) -> None:
    async def _fake_get_me(settings):
        return {"ok": True, "result": None}

    monkeypatch.setattr(cli, "_get_me", _fake_get_me)

    result = CliRunner().invoke(cli.create_app(), ["get-me", "--token", "123:abc"])

    assert result.exit_code == 1
    assert "getMe returned no bot information" in result.output
