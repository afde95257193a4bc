from __future__ import annotations

import enum
import io
import json
from pathlib import Path
from typing import Any, Mapping

import httpx

from . import __version__
from .config import DEFAULT_API_BASE
from .errors import (
    ConfigError,
    TelegramAPIError,
    TelegramBadResponse,
    TelegramHTTPError,
    TelegramNetworkError,
)
from .logging import get_logger

logger = get_logger(__name__)

__all__ = ["ContentType", "TelegramClient", "build_form"]


class ContentType(str, enum.Enum):
    JSON = "application/json"
    FORM = "form-data"

    @classmethod
    def coerce(cls, value: ContentType | str) -> ContentType:
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if "json" in text:
            return cls.JSON
        if "form" in text:
            return cls.FORM
        raise ValueError(f"Unsupported content type {value!r}")


def _is_upload(value: Any) -> bool:
    if isinstance(value, (Path, bytes, bytearray)):
        return True
    return isinstance(value, io.IOBase)


def _upload(name: str, value: Any) -> Any:
    if isinstance(value, Path):
        return (value.name, value.read_bytes())
    if isinstance(value, (bytes, bytearray)):
        return (name, bytes(value))
    return value


def _request_url(exc: httpx.HTTPError) -> str | None:
    try:
        return str(exc.request.url)
    except RuntimeError:
        return None


def build_form(
    params: Mapping[str, Any],
) -> tuple[dict[str, str], dict[str, Any]]:
    """Split parameters into multipart text fields and file parts.

    `Path` values, bytes and open binary files are uploaded; containers are
    JSON-encoded the way the Bot API expects for nested objects in form mode.
    """
    data: dict[str, str] = {}
    files: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if _is_upload(value):
            files[key] = _upload(key, value)
        elif isinstance(value, bool):
            data[key] = "true" if value else "false"
        elif isinstance(value, (dict, list, tuple)):
            data[key] = json.dumps(value)
        else:
            data[key] = str(value)
    return data, files


class TelegramClient:
    """Generic Bot API caller: one method name plus parameters per request.

    `content_type` selects the body encoding for every following call and is
    never reset by the client.
    """

    def __init__(
        self,
        token: str,
        *,
        content_type: ContentType | str = ContentType.JSON,
        timeout_s: float = 30,
        client: httpx.AsyncClient | None = None,
        api_base: str = DEFAULT_API_BASE,
    ) -> None:
        if not token:
            raise ConfigError("Missing token")
        self._base = f"{api_base.rstrip('/')}/bot{token}"
        self._content_type = ContentType.coerce(content_type)
        self._client = client or httpx.AsyncClient(
            timeout=timeout_s,
            headers={"User-Agent": f"tgpoll/{__version__}"},
        )
        self._owns_client = client is None

    @property
    def content_type(self) -> ContentType:
        return self._content_type

    @content_type.setter
    def content_type(self, value: ContentType | str) -> None:
        self._content_type = ContentType.coerce(value)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, params: Mapping[str, Any]) -> httpx.Response:
        url = f"{self._base}/{method}"
        if self._content_type is ContentType.JSON:
            return await self._client.post(url, json=dict(params))
        data, files = build_form(params)
        return await self._client.post(url, data=data, files=files or None)

    async def call(
        self, method_name: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Return the decoded response object, `ok` flag and `result` included."""
        method = method_name.lower()
        params = params or {}
        logger.debug(
            "telegram.request",
            method=method,
            content_type=self._content_type.value,
            payload=dict(params),
        )
        try:
            resp = await self._send(method, params)
        except httpx.HTTPError as e:
            url = _request_url(e)
            logger.error(
                "telegram.network_error",
                method=method,
                url=url,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise TelegramNetworkError(
                f"{method} failed: {e.__class__.__name__}: {e}", method=method
            ) from e

        try:
            payload = resp.json()
        except ValueError as e:
            if not resp.is_success:
                self._raise_http_error(method, resp)
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                url=str(resp.request.url),
                error=str(e),
                error_type=e.__class__.__name__,
                body=resp.text,
            )
            raise TelegramBadResponse(
                f"{method} returned a non-JSON body", method=method
            ) from e

        if not isinstance(payload, dict):
            if not resp.is_success:
                self._raise_http_error(method, resp)
            logger.error(
                "telegram.invalid_payload",
                method=method,
                url=str(resp.request.url),
                payload=payload,
            )
            raise TelegramBadResponse(
                f"{method} returned a non-object payload", method=method
            )

        if not payload.get("ok"):
            error = TelegramAPIError(method, payload)
            logger.error(
                "telegram.api_error",
                method=method,
                status=resp.status_code,
                url=str(resp.request.url),
                error_code=error.error_code,
                description=error.description,
                retry_after=error.retry_after,
            )
            raise error

        if not resp.is_success:
            self._raise_http_error(method, resp)

        logger.debug("telegram.response", method=method, payload=payload)
        return payload

    def _raise_http_error(self, method: str, resp: httpx.Response) -> None:
        logger.error(
            "telegram.http_error",
            method=method,
            status=resp.status_code,
            url=str(resp.request.url),
            body=resp.text,
        )
        raise TelegramHTTPError(
            f"{method} failed with HTTP {resp.status_code}",
            method=method,
            status=resp.status_code,
            body=resp.text,
        )

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 1,
        allowed_updates: list[str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"timeout": timeout_s}
        if offset is not None:
            params["offset"] = offset
        if allowed_updates is not None:
            params["allowed_updates"] = allowed_updates
        return await self.call("getUpdates", params)
