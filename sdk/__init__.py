"""Telegram Bot API SDK — outbound client, Pydantic models, and exceptions.

Usage::

    from sdk import BotClient, APIException
    from sdk.models import Message, Update

    client = BotClient(token)
    await client.send_message(42, "hello")
"""

from sdk.client import BotClient
from sdk.exceptions import APIException

__all__ = [
    "BotClient",
    "APIException",
]
