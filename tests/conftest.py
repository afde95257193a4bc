from collections.abc import Callable

import pytest

from tgpoll.bot import Bot
from tests.fakes import FakeClient


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_bot() -> Callable[..., tuple[Bot, FakeClient]]:
    def _factory(batches: list | None = None, **kwargs) -> tuple[Bot, FakeClient]:
        client = FakeClient(batches)
        bot = Bot(client=client, **kwargs)
        client.on_drained = bot.stop
        return bot, client

    return _factory
