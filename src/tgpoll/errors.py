from __future__ import annotations

import re
from typing import Any

__all__ = [
    "ConfigError",
    "TelegramAPIError",
    "TelegramBadResponse",
    "TelegramError",
    "TelegramHTTPError",
    "TelegramNetworkError",
    "TgpollError",
]

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


class TgpollError(RuntimeError):
    pass


class ConfigError(TgpollError):
    pass


class TelegramError(TgpollError):
    def __init__(self, message: str, *, method: str) -> None:
        super().__init__(message)
        self.method = method


class TelegramNetworkError(TelegramError):
    pass


class TelegramHTTPError(TelegramError):
    def __init__(self, message: str, *, method: str, status: int, body: str) -> None:
        super().__init__(message, method=method)
        self.status = status
        self.body = body


class TelegramBadResponse(TelegramError):
    pass


class TelegramAPIError(TelegramError):
    def __init__(self, method: str, payload: dict[str, Any]) -> None:
        description = payload.get("description")
        self.error_code = payload.get("error_code")
        self.description = description if isinstance(description, str) else None
        params = payload.get("parameters")
        self.parameters: dict[str, Any] = params if isinstance(params, dict) else {}
        super().__init__(
            f"{method} failed: {self.description or 'no description'}",
            method=method,
        )

    @property
    def retry_after(self) -> float | None:
        retry_after = self.parameters.get("retry_after")
        if isinstance(retry_after, (int, float)) and not isinstance(retry_after, bool):
            return float(retry_after)
        if self.description is None:
            return None
        match = _RETRY_AFTER_RE.search(self.description)
        if not match:
            return None
        return float(match.group(1))
