from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple


class ConversationKey(NamedTuple):
    chat_id: int
    user_id: int | None


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    update_id: int
    chat_id: int
    message_id: int
    text: str
    sender_id: int | None
    username: str | None = None
    raw: dict[str, Any] | None = None

    @property
    def key(self) -> ConversationKey:
        return ConversationKey(self.chat_id, self.sender_id)
