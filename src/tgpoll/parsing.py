from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

import msgspec

from .api_models import Update
from .errors import ConfigError
from .logging import get_logger
from .types import IncomingMessage

logger = get_logger(__name__)

__all__ = [
    "COMMAND_RE",
    "command_token",
    "normalize_commands",
    "parse_incoming_update",
]

COMMAND_RE = re.compile(r"^/\S+")


def command_token(text: str | None) -> str | None:
    """Return the leading `/token` of a message, slash included."""
    if not text:
        return None
    match = COMMAND_RE.match(text)
    if match is None:
        return None
    return match.group(0)


def normalize_commands(commands: Mapping[str, Any] | None) -> dict[str, Any]:
    if not commands:
        raise ConfigError("Missing commands")
    normalized: dict[str, Any] = {}
    for name, handler in commands.items():
        if not isinstance(name, str) or not name.strip("/").strip():
            raise ConfigError(f"Invalid command name {name!r}")
        if not callable(handler):
            raise ConfigError(f"Handler for command {name!r} is not callable")
        token = name if name.startswith("/") else f"/{name}"
        if COMMAND_RE.fullmatch(token) is None:
            raise ConfigError(f"Invalid command name {name!r}")
        if token in normalized:
            logger.warning("commands.duplicate", command=token)
        normalized[token] = handler
    return normalized


def parse_incoming_update(update: dict[str, Any]) -> IncomingMessage | None:
    raw_message = update.get("message")
    if not isinstance(raw_message, dict):
        return None
    try:
        decoded = msgspec.convert(update, type=Update)
    except msgspec.ValidationError as exc:
        logger.warning(
            "updates.decode_failed",
            update_id=update.get("update_id"),
            error=str(exc),
        )
        return None
    msg = decoded.message
    if msg is None:
        return None
    sender = msg.from_
    return IncomingMessage(
        update_id=decoded.update_id,
        chat_id=msg.chat.id,
        message_id=msg.message_id,
        text=msg.text or "",
        sender_id=sender.id if sender is not None else None,
        username=sender.username if sender is not None else None,
        raw=raw_message,
    )
