"""Bot application layer — dispatcher, handler registry, and update contexts.

This package may import from ``core/`` and ``sdk/``.
"""

from bot.context import (
    BaseContext,
    CallbackQueryContext,
    ChatMemberContext,
    ChosenInlineResultContext,
    EditedMessageContext,
    GenericContext,
    InlineQueryContext,
    MessageContext,
    build_context,
)
from bot.dispatcher import Dispatcher, run_polling
from bot.registry import HandlerEntry, HandlerRegistry, IncompatibleFilterError

__all__ = [
    # Dispatcher
    "Dispatcher",
    "run_polling",
    # Registry
    "HandlerRegistry",
    "HandlerEntry",
    "IncompatibleFilterError",
    # Contexts
    "build_context",
    "BaseContext",
    "MessageContext",
    "EditedMessageContext",
    "CallbackQueryContext",
    "ChatMemberContext",
    "InlineQueryContext",
    "ChosenInlineResultContext",
    "GenericContext",
]
