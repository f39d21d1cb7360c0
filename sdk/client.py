"""BotClient -- the outbound Telegram Bot API collaborator.

One generic operation, :meth:`BotClient.call`, takes a method name and a
params mapping and returns the parsed ``result``; it raises
:class:`~sdk.exceptions.APIException` whenever Telegram reports the call as
not-ok.  Typed wrappers for the methods contexts use sit on top of it and
parse results into :mod:`sdk.models`.

HTTP calls use the ``requests`` library; the blocking request is offloaded
via :func:`asyncio.to_thread` so handlers can ``await`` API calls without
stalling the event loop.  Each client carries its own token, and there is no
module-level credential state, so several bots can share a process.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import requests

from core.logger import EdgegramLogger
from sdk.exceptions import APIException
from sdk.models import (
    Chat,
    ChatMember,
    ChatPermissions,
    ForumTopic,
    InlineKeyboardMarkup,
    InlineQueryResult,
    Message,
    MessageId,
    Sticker,
    TelegramObject,
    User,
    WebhookInfo,
)

logger = EdgegramLogger.get_logger()

ChatIdLike = Union[int, str]
ReplyMarkup = Union[InlineKeyboardMarkup, Dict[str, Any]]


def _to_api(value: Any) -> Any:
    """Convert models (possibly nested in lists/dicts) into plain JSON data."""
    if isinstance(value, TelegramObject):
        return value.to_api()
    if isinstance(value, (list, tuple)):
        return [_to_api(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_api(item) for key, item in value.items() if item is not None}
    return value


def _payload(params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
    """Merge *params* and *kwargs*, dropping ``None`` values."""
    merged: Dict[str, Any] = dict(params or {})
    merged.update(kwargs)
    return {key: _to_api(value) for key, value in merged.items() if value is not None}


class BotClient:
    """Client-side service layer for the Telegram Bot API.

    Each typed method corresponds to a Bot API endpoint.  Anything not
    wrapped here is still reachable through :meth:`call`.
    """

    _DEFAULT_BASE_URL: str = "https://api.telegram.org"
    _DEFAULT_TIMEOUT: int = 10

    def __init__(
        self,
        token: str,
        *,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        """Create a client bound to one bot *token*.

        Args:
            token: Bot token issued by @BotFather.
            base_url: Bot API server root (override for a local Bot API server).
            timeout: Default request timeout in seconds.
        """
        if not token:
            raise ValueError("BotClient requires a non-empty bot token")
        self._token = token
        self._base_url = f"{base_url.rstrip('/')}/bot{token}"
        self._timeout = timeout

    def __repr__(self) -> str:
        # Never leak the token into logs.
        return f"{type(self).__name__}(timeout={self._timeout})"

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    def _post(self, method: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[int] = None) -> Any:
        """POST *payload* as JSON to *method* and return the ``result`` field.

        Raises:
            APIException: If the HTTP status is not 2xx or ``ok`` is not true.
            requests.RequestException: On transport-level failures.
        """
        url = f"{self._base_url}/{method.lstrip('/')}"
        logger.debug("Calling Bot API", extra={"api_method": method})
        response = requests.post(url, json=payload or {}, timeout=timeout or self._timeout)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if not response.ok or not body.get("ok"):
            exc = APIException.from_response(response.status_code, body)
            logger.warning(
                "Bot API call failed",
                extra={"api_method": method, "error_code": exc.error_code, "description": exc.description},
            )
            raise exc
        return body.get("result")

    # ------------------------------------------------------------------
    #  Generic call
    # ------------------------------------------------------------------

    async def call(self, method: str, params: Optional[Mapping[str, Any]] = None, *, timeout: Optional[int] = None) -> Any:
        """Invoke any Bot API *method* with *params*; ``None`` values are dropped."""
        return await asyncio.to_thread(self._post, method, _payload(params), timeout)

    # ------------------------------------------------------------------
    #  Bot & webhook
    # ------------------------------------------------------------------

    async def get_me(self) -> User:
        """Return the bot's own :class:`~sdk.models.User`."""
        return User.model_validate(await self.call("getMe"))

    async def get_updates(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        timeout: int = 0,
        allowed_updates: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Long-poll for updates; returns raw update dicts in arrival order."""
        params = _payload(offset=offset, limit=limit, timeout=timeout, allowed_updates=allowed_updates)
        # The HTTP timeout must outlive the long-poll window.
        result = await self.call("getUpdates", params, timeout=timeout + self._timeout)
        return list(result or [])

    async def set_webhook(self, url: str, **options: Any) -> bool:
        return bool(await self.call("setWebhook", _payload(options, url=url)))

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        return bool(await self.call("deleteWebhook", {"drop_pending_updates": drop_pending_updates}))

    async def get_webhook_info(self) -> WebhookInfo:
        return WebhookInfo.model_validate(await self.call("getWebhookInfo"))

    # ------------------------------------------------------------------
    #  Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        chat_id: ChatIdLike,
        text: str,
        *,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[ReplyMarkup] = None,
        reply_to_message_id: Optional[int] = None,
        message_thread_id: Optional[int] = None,
        **options: Any,
    ) -> Message:
        """Send a text message; returns the sent :class:`~sdk.models.Message`."""
        params = _payload(
            options,
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            reply_markup=reply_markup,
            reply_to_message_id=reply_to_message_id,
            message_thread_id=message_thread_id,
        )
        return Message.model_validate(await self.call("sendMessage", params))

    async def forward_message(self, chat_id: ChatIdLike, from_chat_id: ChatIdLike, message_id: int, **options: Any) -> Message:
        params = _payload(options, chat_id=chat_id, from_chat_id=from_chat_id, message_id=message_id)
        return Message.model_validate(await self.call("forwardMessage", params))

    async def copy_message(self, chat_id: ChatIdLike, from_chat_id: ChatIdLike, message_id: int, **options: Any) -> MessageId:
        params = _payload(options, chat_id=chat_id, from_chat_id=from_chat_id, message_id=message_id)
        return MessageId.model_validate(await self.call("copyMessage", params))

    async def send_photo(self, chat_id: ChatIdLike, photo: str, **options: Any) -> Message:
        """Send a photo by ``file_id`` or URL."""
        return Message.model_validate(await self.call("sendPhoto", _payload(options, chat_id=chat_id, photo=photo)))

    async def send_document(self, chat_id: ChatIdLike, document: str, **options: Any) -> Message:
        """Send a document by ``file_id`` or URL."""
        return Message.model_validate(await self.call("sendDocument", _payload(options, chat_id=chat_id, document=document)))

    async def edit_message_text(
        self,
        text: str,
        *,
        chat_id: Optional[ChatIdLike] = None,
        message_id: Optional[int] = None,
        inline_message_id: Optional[str] = None,
        **options: Any,
    ) -> Union[Message, bool]:
        """Edit a message's text.

        Returns the edited message, or ``True`` for inline messages.
        """
        params = _payload(
            options, text=text, chat_id=chat_id, message_id=message_id, inline_message_id=inline_message_id,
        )
        result = await self.call("editMessageText", params)
        return Message.model_validate(result) if isinstance(result, dict) else bool(result)

    async def edit_message_reply_markup(
        self,
        reply_markup: Optional[ReplyMarkup] = None,
        *,
        chat_id: Optional[ChatIdLike] = None,
        message_id: Optional[int] = None,
        inline_message_id: Optional[str] = None,
        **options: Any,
    ) -> Union[Message, bool]:
        """Replace a message's inline keyboard; ``None`` removes it."""
        params = _payload(
            options,
            reply_markup=reply_markup,
            chat_id=chat_id,
            message_id=message_id,
            inline_message_id=inline_message_id,
        )
        result = await self.call("editMessageReplyMarkup", params)
        return Message.model_validate(result) if isinstance(result, dict) else bool(result)

    async def delete_message(self, chat_id: ChatIdLike, message_id: int) -> bool:
        return bool(await self.call("deleteMessage", {"chat_id": chat_id, "message_id": message_id}))

    # ------------------------------------------------------------------
    #  Callback & inline queries
    # ------------------------------------------------------------------

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        *,
        show_alert: Optional[bool] = None,
        **options: Any,
    ) -> bool:
        """Acknowledge a callback query so the client's spinner stops."""
        params = _payload(options, callback_query_id=callback_query_id, text=text, show_alert=show_alert)
        return bool(await self.call("answerCallbackQuery", params))

    async def answer_inline_query(self, inline_query_id: str, results: Sequence[InlineQueryResult], **options: Any) -> bool:
        params = _payload(options, inline_query_id=inline_query_id, results=list(results))
        return bool(await self.call("answerInlineQuery", params))

    # ------------------------------------------------------------------
    #  Chats & membership
    # ------------------------------------------------------------------

    async def get_chat(self, chat_id: ChatIdLike) -> Chat:
        return Chat.model_validate(await self.call("getChat", {"chat_id": chat_id}))

    async def get_chat_member(self, chat_id: ChatIdLike, user_id: int) -> ChatMember:
        return ChatMember.model_validate(await self.call("getChatMember", {"chat_id": chat_id, "user_id": user_id}))

    async def ban_chat_member(
        self,
        chat_id: ChatIdLike,
        user_id: int,
        until_date: Optional[int] = None,
        revoke_messages: Optional[bool] = None,
    ) -> bool:
        """Ban *user_id*; ``until_date`` of ``None``/0 means forever."""
        params = _payload(chat_id=chat_id, user_id=user_id, until_date=until_date, revoke_messages=revoke_messages)
        return bool(await self.call("banChatMember", params))

    async def unban_chat_member(self, chat_id: ChatIdLike, user_id: int, only_if_banned: Optional[bool] = None) -> bool:
        params = _payload(chat_id=chat_id, user_id=user_id, only_if_banned=only_if_banned)
        return bool(await self.call("unbanChatMember", params))

    async def restrict_chat_member(
        self,
        chat_id: ChatIdLike,
        user_id: int,
        permissions: Union[ChatPermissions, Dict[str, Any]],
        until_date: Optional[int] = None,
    ) -> bool:
        params = _payload(chat_id=chat_id, user_id=user_id, permissions=permissions, until_date=until_date)
        return bool(await self.call("restrictChatMember", params))

    async def promote_chat_member(self, chat_id: ChatIdLike, user_id: int, **rights: Optional[bool]) -> bool:
        """Promote *user_id*; pass rights such as ``can_delete_messages=True``."""
        return bool(await self.call("promoteChatMember", _payload(rights, chat_id=chat_id, user_id=user_id)))

    async def set_chat_administrator_custom_title(self, chat_id: ChatIdLike, user_id: int, custom_title: str) -> bool:
        params = {"chat_id": chat_id, "user_id": user_id, "custom_title": custom_title}
        return bool(await self.call("setChatAdministratorCustomTitle", params))

    # ------------------------------------------------------------------
    #  Forum topics
    # ------------------------------------------------------------------

    async def create_forum_topic(
        self,
        chat_id: ChatIdLike,
        name: str,
        *,
        icon_color: Optional[int] = None,
        icon_custom_emoji_id: Optional[str] = None,
    ) -> ForumTopic:
        params = _payload(chat_id=chat_id, name=name, icon_color=icon_color, icon_custom_emoji_id=icon_custom_emoji_id)
        return ForumTopic.model_validate(await self.call("createForumTopic", params))

    async def edit_forum_topic(
        self,
        chat_id: ChatIdLike,
        message_thread_id: int,
        *,
        name: Optional[str] = None,
        icon_custom_emoji_id: Optional[str] = None,
    ) -> bool:
        params = _payload(
            chat_id=chat_id, message_thread_id=message_thread_id, name=name, icon_custom_emoji_id=icon_custom_emoji_id,
        )
        return bool(await self.call("editForumTopic", params))

    async def close_forum_topic(self, chat_id: ChatIdLike, message_thread_id: int) -> bool:
        return await self._topic_action("closeForumTopic", chat_id, message_thread_id)

    async def reopen_forum_topic(self, chat_id: ChatIdLike, message_thread_id: int) -> bool:
        return await self._topic_action("reopenForumTopic", chat_id, message_thread_id)

    async def delete_forum_topic(self, chat_id: ChatIdLike, message_thread_id: int) -> bool:
        """Delete a topic together with all of its messages."""
        return await self._topic_action("deleteForumTopic", chat_id, message_thread_id)

    async def unpin_all_forum_topic_messages(self, chat_id: ChatIdLike, message_thread_id: int) -> bool:
        return await self._topic_action("unpinAllForumTopicMessages", chat_id, message_thread_id)

    async def hide_general_forum_topic(self, chat_id: ChatIdLike) -> bool:
        return bool(await self.call("hideGeneralForumTopic", {"chat_id": chat_id}))

    async def unhide_general_forum_topic(self, chat_id: ChatIdLike) -> bool:
        return bool(await self.call("unhideGeneralForumTopic", {"chat_id": chat_id}))

    async def get_forum_topic_icon_stickers(self) -> List[Sticker]:
        """Custom emoji stickers usable as forum topic icons."""
        result = await self.call("getForumTopicIconStickers")
        return [Sticker.model_validate(item) for item in result or []]

    async def _topic_action(self, method: str, chat_id: ChatIdLike, message_thread_id: int) -> bool:
        return bool(await self.call(method, {"chat_id": chat_id, "message_thread_id": message_thread_id}))
