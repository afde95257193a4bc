import pytest

from tgpoll.errors import ConfigError
from tgpoll.parsing import command_token, normalize_commands, parse_incoming_update
from tgpoll.types import ConversationKey
from tests.fakes import make_update


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("/start", "/start"),
        ("/start now", "/start"),
        ("/start@MyBot", "/start@MyBot"),
        ("/Start", "/Start"),
        ("/a\tb", "/a"),
        ("start", None),
        ("hello /start", None),
        ("/ start", None),
        ("/", None),
        (" /start", None),
        ("", None),
        (None, None),
    ],
)
def test_command_token(text, expected) -> None:
    assert command_token(text) == expected


def _noop(bot, msg):
    return None


def test_normalize_commands_adds_slash() -> None:
    table = normalize_commands({"start": _noop, "/help": _noop})
    assert set(table) == {"/start", "/help"}


@pytest.mark.parametrize("commands", [None, {}])
def test_normalize_commands_requires_entries(commands) -> None:
    with pytest.raises(ConfigError, match="Missing commands"):
        normalize_commands(commands)


@pytest.mark.parametrize("name", ["", "/", "two words"])
def test_normalize_commands_rejects_bad_names(name) -> None:
    with pytest.raises(ConfigError, match="Invalid command name"):
        normalize_commands({name: _noop})


def test_normalize_commands_rejects_non_callables() -> None:
    with pytest.raises(ConfigError, match="not callable"):
        normalize_commands({"/start": "nope"})


def test_parse_incoming_update() -> None:
    update = make_update(5, "/start", chat_id=-100, user_id=42, message_id=9)

    msg = parse_incoming_update(update)

    assert msg is not None
    assert msg.update_id == 5
    assert msg.chat_id == -100
    assert msg.sender_id == 42
    assert msg.username == "user42"
    assert msg.message_id == 9
    assert msg.text == "/start"
    assert msg.raw is update["message"]
    assert msg.key == ConversationKey(-100, 42)


def test_parse_message_without_sender_or_text() -> None:
    msg = parse_incoming_update(make_update(5, None, user_id=None))

    assert msg is not None
    assert msg.text == ""
    assert msg.sender_id is None
    assert msg.key == ConversationKey(1, None)


@pytest.mark.parametrize(
    "update",
    [
        {"update_id": 1},
        {"update_id": 1, "callback_query": {"id": "x"}},
        {"update_id": 1, "message": {"message_id": 3}},
        {"update_id": 1, "message": {"message_id": 3, "chat": {"id": "abc"}}},
    ],
)
def test_parse_incoming_update_rejects(update) -> None:
    assert parse_incoming_update(update) is None
