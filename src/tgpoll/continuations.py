from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from .logging import get_logger
from .types import ConversationKey, IncomingMessage

if TYPE_CHECKING:
    from .bot import Bot

logger = get_logger(__name__)

__all__ = [
    "FINISH",
    "Continue",
    "ContinuationTable",
    "ConversationKey",
    "Finish",
    "Handler",
    "HandlerResult",
    "next_step",
]

Handler: TypeAlias = Callable[["Bot", IncomingMessage], Any]


@dataclass(frozen=True, slots=True)
class Continue:
    """Route the next message of the same (chat, user) pair to `handler`."""

    handler: Handler

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError(f"Continue expects a callable, got {self.handler!r}")


@dataclass(frozen=True, slots=True)
class Finish:
    """End the conversation; the next message goes through command lookup."""


FINISH = Finish()

HandlerResult: TypeAlias = Continue | Finish | None


def next_step(result: Any) -> Handler | None:
    if isinstance(result, Continue):
        return result.handler
    if callable(result):
        return result
    if isinstance(result, Finish) or not result:
        return None
    raise TypeError(
        f"Handler returned {type(result).__name__}; "
        "expected Continue, FINISH, a handler or None"
    )


class ContinuationTable:
    """Pending follow-up handler per (chat, user) pair.

    Entries never expire on their own. When `max_entries` is set, installing a
    new pair into a full table evicts the pair installed longest ago.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._entries: dict[ConversationKey, Handler] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[ConversationKey]:
        return list(self._entries)

    def get(self, key: ConversationKey) -> Handler | None:
        return self._entries.get(key)

    def set(self, key: ConversationKey, handler: Handler) -> None:
        if key in self._entries:
            del self._entries[key]
        elif self._max_entries is not None and len(self._entries) >= self._max_entries:
            evicted = next(iter(self._entries))
            del self._entries[evicted]
            logger.info(
                "continuations.evicted",
                chat_id=evicted.chat_id,
                user_id=evicted.user_id,
                size=len(self._entries),
            )
        self._entries[key] = handler

    def discard(self, key: ConversationKey) -> None:
        self._entries.pop(key, None)

    def apply(self, key: ConversationKey, handler: Handler | None) -> None:
        if handler is None:
            self.discard(key)
        else:
            self.set(key, handler)
