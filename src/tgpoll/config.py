from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .errors import ConfigError

__all__ = [
    "BotSettings",
    "ConfigError",
    "DEFAULT_API_BASE",
    "ENV_BOT_TOKEN",
    "load_config",
    "load_settings",
]

ENV_BOT_TOKEN = "TGPOLL_BOT_TOKEN"

LOCAL_CONFIG_NAME = Path(".tgpoll") / "tgpoll.toml"
HOME_CONFIG_PATH = Path.home() / ".tgpoll" / "tgpoll.toml"

DEFAULT_API_BASE = "https://api.telegram.org"

FetchErrorPolicy = Literal["raise", "retry"]


@dataclass(frozen=True, slots=True)
class BotSettings:
    bot_token: str
    poll_timeout_s: int = 1
    request_timeout_s: float = 30.0
    fetch_errors: FetchErrorPolicy = "raise"
    retry_delay_s: float = 5.0
    max_conversations: int | None = None
    api_base: str = DEFAULT_API_BASE


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config(path: str | Path | None = None) -> tuple[dict, Path | None]:
    """Load the TOML config.

    An explicit path must exist. Without one, the local and home locations are
    tried in order and an empty config is returned when neither exists, so a
    token supplied through the environment is enough to run.
    """
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate
    return {}, None


def _where(config_path: Path | None) -> str:
    return str(config_path) if config_path is not None else "config"


def get_bot_token(config: dict, config_path: Path | None) -> str:
    """Get bot token from environment variable or config file.

    Environment variable TGPOLL_BOT_TOKEN takes precedence over config file.
    """
    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        return env_token.strip()

    try:
        token = config["bot_token"]
    except KeyError:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {_where(config_path)}."
        ) from None

    if not isinstance(token, str) or not token.strip():
        raise ConfigError(
            f"Invalid `bot_token` in {_where(config_path)}; expected a non-empty string."
        )
    return token.strip()


def _positive_number(
    config: dict, key: str, default: float, config_path: Path | None
) -> float:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"Invalid `{key}` in {_where(config_path)}; expected a non-negative number."
        )
    return value


def _parse_max_conversations(config: dict, config_path: Path | None) -> int | None:
    value = config.get("max_conversations")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(
            f"Invalid `max_conversations` in {_where(config_path)}; "
            "expected a positive integer."
        )
    return value


def _parse_fetch_errors(config: dict, config_path: Path | None) -> FetchErrorPolicy:
    value = config.get("fetch_errors", "raise")
    if value not in ("raise", "retry"):
        raise ConfigError(
            f"Invalid `fetch_errors` in {_where(config_path)}; "
            "expected 'raise' or 'retry'."
        )
    return value


def parse_settings(
    config: dict, config_path: Path | None, *, token: str | None = None
) -> BotSettings:
    bot_token = token.strip() if token and token.strip() else None
    if bot_token is None:
        bot_token = get_bot_token(config, config_path)

    poll_timeout = _positive_number(config, "poll_timeout_s", 1, config_path)
    if not float(poll_timeout).is_integer():
        raise ConfigError(
            f"Invalid `poll_timeout_s` in {_where(config_path)}; expected whole seconds."
        )

    api_base = config.get("api_base", DEFAULT_API_BASE)
    if not isinstance(api_base, str) or not api_base.strip():
        raise ConfigError(
            f"Invalid `api_base` in {_where(config_path)}; expected a non-empty string."
        )

    return BotSettings(
        bot_token=bot_token,
        poll_timeout_s=int(poll_timeout),
        request_timeout_s=float(
            _positive_number(config, "request_timeout_s", 30.0, config_path)
        ),
        fetch_errors=_parse_fetch_errors(config, config_path),
        retry_delay_s=float(_positive_number(config, "retry_delay_s", 5.0, config_path)),
        max_conversations=_parse_max_conversations(config, config_path),
        api_base=api_base.strip().rstrip("/"),
    )


def load_settings(
    path: str | Path | None = None, *, token: str | None = None
) -> BotSettings:
    config, config_path = load_config(path)
    return parse_settings(config, config_path, token=token)
