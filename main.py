"""Example edgegram bot.

Wires :mod:`config`, a :class:`~sdk.client.BotClient` and a
:class:`~bot.dispatcher.Dispatcher`, registers a few handlers, then either
long-polls (default) or dispatches a single update read as JSON from stdin,
the shape a webhook / serverless invocation takes::

    python main.py
    echo '{"update_id": 1, "message": {...}}' | python main.py --once
"""

import asyncio
import json
import sys

from config import ALLOWED_UPDATES, API_BASE_URL, BOT_TOKEN, POLL_TIMEOUT, REQUEST_TIMEOUT
from core import filters
from core.logger import EdgegramLogger
from sdk.client import BotClient
from bot.context import CallbackQueryContext, ChatMemberContext, InlineQueryContext, MessageContext
from bot.dispatcher import Dispatcher, run_polling

logger = EdgegramLogger.get_logger()


def setup_handlers(dispatcher: Dispatcher) -> None:
    """Register the example handlers on *dispatcher*."""

    @dispatcher.command("start")
    async def on_start(ctx: MessageContext) -> None:
        name = ctx.user.first_name if ctx.user else "there"
        await ctx.reply(
            f"👋 Hi {name}! Try /ping or /menu.",
            reply_markup={"inline_keyboard": [[{"text": "Menu", "callback_data": "menu"}]]},
        )

    @dispatcher.command("ping")
    async def on_ping(ctx: MessageContext) -> None:
        await ctx.reply("pong")

    @dispatcher.command("echo")
    async def on_echo(ctx: MessageContext) -> None:
        await ctx.reply(ctx.command_payload or "Usage: /echo <text>", as_reply=True)

    @dispatcher.command("topic", filters.chat_type("supergroup"))
    async def on_topic(ctx: MessageContext) -> None:
        topic = await ctx.create_forum_topic(ctx.command_payload or "New topic")
        await ctx.reply(f"🧵 Created topic #{topic.message_thread_id}")

    @dispatcher.on("callback_query", filters.callback_data("menu"))
    async def on_menu(ctx: CallbackQueryContext) -> None:
        await ctx.answer()
        await ctx.edit_text("📖 Commands: /ping, /echo <text>, /topic <name>")

    @dispatcher.on("chat_member", filters.new_chat_members())
    async def on_join(ctx: ChatMemberContext) -> None:
        await ctx.reply(f"Welcome to the chat, {ctx.user.display_name}!")

    @dispatcher.on("chat_member", filters.left_chat_member() | filters.kicked_chat_member())
    async def on_leave(ctx: ChatMemberContext) -> None:
        await ctx.reply(f"Goodbye, {ctx.user.full_name}.")

    @dispatcher.on("inline_query")
    async def on_inline(ctx: InlineQueryContext) -> None:
        query = ctx.query or "nothing"
        await ctx.answer([ctx.article_result("echo", f"Echo: {query}", query)], cache_time=0)


async def run_once(dispatcher: Dispatcher, raw: str) -> None:
    """Dispatch one JSON-encoded update (webhook style)."""
    try:
        update = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Update is not valid JSON", extra={"error": str(exc)})
        return
    await dispatcher.dispatch(update)


def main() -> None:
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    client = BotClient(BOT_TOKEN, base_url=API_BASE_URL, timeout=REQUEST_TIMEOUT)
    dispatcher = Dispatcher(client)
    setup_handlers(dispatcher)

    if "--once" in sys.argv[1:]:
        asyncio.run(run_once(dispatcher, sys.stdin.read()))
        return

    logger.info("edgegram example bot is running")
    try:
        asyncio.run(run_polling(dispatcher, poll_timeout=POLL_TIMEOUT, allowed_updates=ALLOWED_UPDATES))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
