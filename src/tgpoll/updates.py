from __future__ import annotations

from typing import Any, Protocol

from .logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "ALLOWED_UPDATES",
    "UNSET_OFFSET",
    "UpdateFetcher",
    "UpdatesClient",
    "bootstrap_offset",
]

# getUpdates treats a negative offset as "from the end of the queue".
UNSET_OFFSET = -1
ALLOWED_UPDATES = ["message"]


class UpdatesClient(Protocol):
    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 1,
        allowed_updates: list[str] | None = None,
    ) -> Any: ...


def bootstrap_offset(updates: list[dict[str, Any]], offset: int = UNSET_OFFSET) -> int:
    if not updates:
        return offset
    return int(updates[0]["update_id"]) + 1


class UpdateFetcher:
    def __init__(self, client: UpdatesClient, *, timeout_s: int = 1) -> None:
        self._client = client
        self._timeout_s = timeout_s

    async def fetch(self, offset: int) -> list[dict[str, Any]]:
        payload = await self._client.get_updates(
            offset=offset,
            timeout_s=self._timeout_s,
            allowed_updates=list(ALLOWED_UPDATES),
        )
        result = payload.get("result") if isinstance(payload, dict) else None
        if not result:
            return []
        if not isinstance(result, list):
            logger.warning("updates.unexpected_result", result_type=type(result).__name__)
            return []
        updates = [item for item in result if _has_update_id(item)]
        if len(updates) != len(result):
            logger.warning("updates.dropped_invalid", count=len(result) - len(updates))
        if updates:
            logger.debug("updates.fetched", offset=offset, count=len(updates))
        return updates


def _has_update_id(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    update_id = item.get("update_id")
    return isinstance(update_id, int) and not isinstance(update_id, bool)
