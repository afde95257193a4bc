from __future__ import annotations

import importlib
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, NoReturn

import anyio
import typer

from . import __version__
from .bot import Bot
from .config import BotSettings, load_settings
from .errors import ConfigError, TelegramError
from .logging import get_logger, setup_logging

logger = get_logger(__name__)

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Path to a tgpoll.toml config file."
)
_TOKEN_OPTION = typer.Option(
    None, "--token", help="Bot token (overrides config and environment)."
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _exit_error(message: str) -> NoReturn:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=1)


def _load_settings_or_exit(config: Path | None, token: str | None) -> BotSettings:
    try:
        return load_settings(config, token=token)
    except ConfigError as exc:
        _exit_error(str(exc))


def load_commands(target: str) -> Mapping[str, Any]:
    """Resolve `module:attribute` to a command mapping.

    The attribute may be a mapping or a zero-argument callable returning one.
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(
            f"Invalid target {target!r}; expected `module:attribute`."
        )
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Failed to import {module_name!r}: {exc}") from exc
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ConfigError(
                f"{module_name!r} has no attribute {attr_path!r}."
            ) from None
    if callable(obj) and not isinstance(obj, Mapping):
        obj = obj()
    if not isinstance(obj, Mapping):
        raise ConfigError(
            f"{target!r} resolved to {type(obj).__name__}; expected a mapping "
            "of command names to handlers."
        )
    return obj


async def _run_bot(settings: BotSettings, commands: Mapping[str, Any]) -> None:
    async with Bot.from_settings(settings) as bot:
        await bot.run(commands)


def run(
    target: str = typer.Argument(
        ..., help="Command table to serve, as `module:attribute`."
    ),
    config: Path | None = _CONFIG_OPTION,
    token: str | None = _TOKEN_OPTION,
    debug: bool = typer.Option(False, "--debug", help="Log debug output."),
) -> None:
    """Poll for messages and dispatch them to the given command handlers."""
    setup_logging(debug=debug)
    settings = _load_settings_or_exit(config, token)
    try:
        commands = load_commands(target)
    except ConfigError as exc:
        _exit_error(str(exc))
    try:
        anyio.run(_run_bot, settings, commands)
    except ConfigError as exc:
        _exit_error(str(exc))
    except TelegramError as exc:
        logger.error("dispatch.failed", error=str(exc), error_type=exc.__class__.__name__)
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")
        raise typer.Exit(code=130) from None


async def _get_me(settings: BotSettings) -> Any:
    async with Bot.from_settings(settings) as bot:
        return await bot.getMe()


def get_me(
    config: Path | None = _CONFIG_OPTION,
    token: str | None = _TOKEN_OPTION,
) -> None:
    """Show the identity of the configured bot."""
    settings = _load_settings_or_exit(config, token)
    try:
        response = anyio.run(_get_me, settings)
    except TelegramError as exc:
        _exit_error(str(exc))
    me = response.get("result") if isinstance(response, dict) else None
    if not isinstance(me, dict):
        _exit_error("getMe returned no bot information")
    username = me.get("username")
    typer.echo(f"id: {me.get('id')}")
    if username:
        typer.echo(f"username: @{username}")
    if me.get("first_name"):
        typer.echo(f"name: {me['first_name']}")


def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Minimal long-polling Telegram bot runner."""


def create_app() -> typer.Typer:
    app = typer.Typer(add_completion=False, no_args_is_help=True)
    app.callback()(main_callback)
    app.command(name="run")(run)
    app.command(name="get-me")(get_me)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
