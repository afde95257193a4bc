"""Minimal long-polling Telegram bot framework with conversation continuations."""

from __future__ import annotations

__version__ = "1.0.0"

from .bot import Bot
from .client import ContentType, TelegramClient
from .continuations import FINISH, Continue, ContinuationTable, Finish
from .errors import (
    ConfigError,
    TelegramAPIError,
    TelegramError,
    TgpollError,
)
from .types import ConversationKey, IncomingMessage

__all__ = [
    "FINISH",
    "Bot",
    "ConfigError",
    "ContentType",
    "Continue",
    "ContinuationTable",
    "ConversationKey",
    "Finish",
    "IncomingMessage",
    "TelegramAPIError",
    "TelegramClient",
    "TelegramError",
    "TgpollError",
    "__version__",
]
