"""Two-step conversation bot.

    TGPOLL_BOT_TOKEN=... tgpoll run examples.greeter:COMMANDS
"""

from __future__ import annotations

from tgpoll import FINISH, Bot, Continue, IncomingMessage


async def greet(bot: Bot, msg: IncomingMessage) -> Continue:
    await bot.sendMessage(chat_id=msg.chat_id, text="Hi! What should I call you?")
    return Continue(remember_name)


async def remember_name(bot: Bot, msg: IncomingMessage):
    name = msg.text.strip()
    if not name:
        await bot.sendMessage(chat_id=msg.chat_id, text="Please send your name as text.")
        return Continue(remember_name)
    await bot.sendMessage(chat_id=msg.chat_id, text=f"Nice to meet you, {name}!")
    return FINISH


async def whoami(bot: Bot, msg: IncomingMessage) -> None:
    response = await bot.getMe()
    username = response["result"]["username"]
    await bot.sendMessage(chat_id=msg.chat_id, text=f"I am @{username}")


COMMANDS = {
    "/greet": greet,
    "/whoami": whoami,
}
