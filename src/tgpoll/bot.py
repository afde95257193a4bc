from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

import anyio

from .client import ContentType, TelegramClient
from .config import DEFAULT_API_BASE, BotSettings, FetchErrorPolicy
from .continuations import ContinuationTable, Handler, next_step
from .errors import ConfigError, TelegramError
from .logging import get_logger
from .parsing import command_token, normalize_commands, parse_incoming_update
from .types import IncomingMessage
from .updates import UNSET_OFFSET, UpdateFetcher, bootstrap_offset

logger = get_logger(__name__)

__all__ = ["Bot", "RemoteClient"]


class RemoteClient(Protocol):
    content_type: ContentType

    async def call(
        self, method_name: str, params: Mapping[str, Any] | None = None
    ) -> Any: ...

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 1,
        allowed_updates: list[str] | None = None,
    ) -> Any: ...

    async def close(self) -> None: ...


class Bot:
    """Long-polling command dispatcher.

    Every attribute the bot does not define itself names a Bot API method:
    `await bot.sendMessage(chat_id=1, text="hi")` posts to `sendmessage`.
    Use `await bot.call(name, **params)` for methods whose name is taken by
    the bot itself, such as `close`.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        client: RemoteClient | None = None,
        poll_timeout_s: int = 1,
        request_timeout_s: float = 30,
        fetch_errors: FetchErrorPolicy = "raise",
        retry_delay_s: float = 5.0,
        max_conversations: int | None = None,
        api_base: str = DEFAULT_API_BASE,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if client is None:
            if not token:
                raise ConfigError("Missing token")
            client = TelegramClient(
                token, timeout_s=request_timeout_s, api_base=api_base
            )
        if fetch_errors not in ("raise", "retry"):
            raise ConfigError(f"Invalid fetch error policy {fetch_errors!r}")
        self._client = client
        self._fetcher = UpdateFetcher(client, timeout_s=poll_timeout_s)
        self._fetch_errors = fetch_errors
        self._retry_delay_s = retry_delay_s
        self._sleep = sleep
        self._continuations = ContinuationTable(max_entries=max_conversations)
        self._offset = UNSET_OFFSET
        self._stopped = False

    @classmethod
    def from_settings(cls, settings: BotSettings, **kwargs: Any) -> Bot:
        return cls(
            settings.bot_token,
            poll_timeout_s=settings.poll_timeout_s,
            request_timeout_s=settings.request_timeout_s,
            fetch_errors=settings.fetch_errors,
            retry_delay_s=settings.retry_delay_s,
            max_conversations=settings.max_conversations,
            api_base=settings.api_base,
            **kwargs,
        )

    def __getattr__(self, name: str) -> Callable[..., Awaitable[Any]]:
        # Names defined on the class (properties included) are never proxied.
        if name.startswith("_") or hasattr(type(self), name):
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            )

        async def remote_call(**params: Any) -> Any:
            return await self._client.call(name, params)

        remote_call.__name__ = name
        remote_call.__qualname__ = f"{type(self).__name__}.{name}"
        return remote_call

    async def __aenter__(self) -> Bot:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def client(self) -> RemoteClient:
        return self._client

    @property
    def content_type(self) -> ContentType:
        return self._client.content_type

    @content_type.setter
    def content_type(self, value: ContentType | str) -> None:
        self._client.content_type = value  # type: ignore[assignment]

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def continuations(self) -> ContinuationTable:
        return self._continuations

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Ask `run` to return before its next fetch."""
        self._stopped = True

    async def close(self) -> None:
        await self._client.close()

    async def call(self, method_name: str, **params: Any) -> Any:
        return await self._client.call(method_name, params)

    async def run(self, commands: Mapping[str, Handler] | None) -> None:
        table = normalize_commands(commands)
        logger.info("dispatch.starting", commands=sorted(table))

        # Skip the backlog: only updates newer than the latest pending one
        # are dispatched.
        backlog = await self._fetch(self._offset)
        self._offset = bootstrap_offset(backlog, self._offset)
        logger.info("dispatch.bootstrapped", offset=self._offset, skipped=len(backlog))

        while not self._stopped:
            updates = await self._fetch(self._offset)
            for update in updates:
                await self.process_update(update, table)

        logger.info("dispatch.stopped", offset=self._offset)

    async def _fetch(self, offset: int) -> list[dict[str, Any]]:
        while True:
            try:
                return await self._fetcher.fetch(offset)
            except TelegramError as exc:
                if self._fetch_errors == "raise":
                    raise
                logger.warning(
                    "dispatch.fetch_failed",
                    offset=offset,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                    retry_in=self._retry_delay_s,
                )
            await self._sleep(self._retry_delay_s)
            if self._stopped:
                return []

    async def process_update(
        self, update: dict[str, Any], commands: Mapping[str, Handler]
    ) -> None:
        # Advance first so a failing handler never sees the same update twice.
        self._offset = max(self._offset, int(update["update_id"]) + 1)

        msg = parse_incoming_update(update)
        if msg is None:
            logger.debug("dispatch.skipped", update_id=update.get("update_id"))
            return

        key = msg.key
        handler = self._continuations.get(key)
        if handler is not None:
            logger.debug(
                "dispatch.continuation",
                update_id=msg.update_id,
                chat_id=msg.chat_id,
                user_id=msg.sender_id,
            )
        else:
            token = command_token(msg.text)
            handler = commands.get(token) if token is not None else None
            if handler is None:
                logger.debug(
                    "dispatch.ignored",
                    update_id=msg.update_id,
                    chat_id=msg.chat_id,
                    command=token,
                )
                return
            logger.info(
                "dispatch.command",
                update_id=msg.update_id,
                chat_id=msg.chat_id,
                user_id=msg.sender_id,
                command=token,
            )

        follow_up = next_step(await self._invoke(handler, msg))
        self._continuations.apply(key, follow_up)

    async def _invoke(self, handler: Handler, msg: IncomingMessage) -> Any:
        result = handler(self, msg)
        if inspect.isawaitable(result):
            result = await result
        return result
