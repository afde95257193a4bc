from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from tgpoll.client import ContentType


def make_update(
    update_id: int,
    text: str | None = None,
    *,
    chat_id: int = 1,
    user_id: int | None = 1,
    message_id: int | None = None,
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "message_id": message_id if message_id is not None else update_id * 10,
        "date": 1700000000,
        "chat": {"id": chat_id, "type": "private"},
    }
    if user_id is not None:
        message["from"] = {"id": user_id, "is_bot": False, "username": f"user{user_id}"}
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


class FakeClient:
    """Scripted stand-in for TelegramClient.

    Responses carry the same `ok`/`result` envelope as the Bot API.

    Each `get_updates` call pops the next batch; an exception instance in the
    script is raised instead. Once the script is exhausted `on_drained` runs
    and an empty batch is returned.
    """

    def __init__(self, batches: list[Any] | None = None) -> None:
        self.content_type = ContentType.JSON
        self.batches: list[Any] = list(batches or [])
        self.update_calls: list[dict[str, Any]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.results: dict[str, Any] = {}
        self.on_drained: Callable[[], None] | None = None
        self.closed = False

    @property
    def offsets(self) -> list[int | None]:
        return [call["offset"] for call in self.update_calls]

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 1,
        allowed_updates: list[str] | None = None,
    ) -> Any:
        self.update_calls.append(
            {
                "offset": offset,
                "timeout_s": timeout_s,
                "allowed_updates": allowed_updates,
            }
        )
        if self.batches:
            batch = self.batches.pop(0)
            if isinstance(batch, Exception):
                raise batch
            return {"ok": True, "result": batch}
        if self.on_drained is not None:
            self.on_drained()
        return {"ok": True, "result": []}

    async def call(
        self, method_name: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        self.calls.append((method_name, dict(params or {})))
        return {"ok": True, "result": self.results.get(method_name, True)}

    async def close(self) -> None:
        self.closed = True
