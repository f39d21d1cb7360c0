"""Per-update context objects handed to handlers.

The dispatcher picks exactly one variant per update with
:func:`build_context` and shares that instance with every handler it
invokes for the update.  Each variant reads the raw update dict once in its
constructor, exposes flat convenience fields (``chat_id``, ``user``,
``command`` …), and offers ``async`` helpers that call the Bot API through
the :class:`~sdk.client.BotClient` it was built with.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Optional, Sequence, Union

from core.filters import is_demote, is_join, is_kick, is_leave, is_promote
from core.logger import EdgegramLogger
from core.resolve import display_name, full_name, parse_command, update_kinds
from sdk.client import BotClient, ReplyMarkup
from sdk.models import (
    Chat,
    ChatMember,
    ChatPermissions,
    ForumTopic,
    InlineQueryResult,
    InlineQueryResultArticle,
    InlineQueryResultDocument,
    InlineQueryResultLocation,
    InlineQueryResultPhoto,
    InlineQueryResultVideo,
    InputTextMessageContent,
    Message,
    MessageId,
)

logger = EdgegramLogger.get_logger()

ChatIdLike = Union[int, str]


# ── Accessor records ─────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, slots=True)
class UserInfo:
    id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    full_name: str = ""
    display_name: str = ""

    @classmethod
    def from_dict(cls, user: dict) -> UserInfo:
        return cls(
            id=user.get("id", 0),
            first_name=user.get("first_name") or "",
            last_name=user.get("last_name"),
            username=user.get("username"),
            full_name=full_name(user),
            display_name=display_name(user),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class ChatInfo:
    id: ChatIdLike
    type: str
    title: Optional[str] = None
    topic_id: Optional[int] = None

    @classmethod
    def from_message(cls, message: dict) -> ChatInfo:
        chat = message.get("chat") or {}
        return cls(
            id=chat.get("id", 0),
            type=chat.get("type", ""),
            title=chat.get("title"),
            topic_id=message.get("message_thread_id"),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class MessageInfo:
    """Message fields plus the parsed command, if the text is one."""

    id: int
    text: str
    date: int
    content_type: str
    command: Optional[str] = None
    command_payload: Optional[str] = None
    args: tuple[str, ...] = ()
    is_edited: bool = False


_CONTENT_TYPES: tuple[str, ...] = (
    "text", "photo", "video", "document", "audio", "voice", "animation", "sticker",
)


def _message_info(message: dict, *, is_edited: bool = False) -> MessageInfo:
    text = message.get("text") or ""
    content_type = next((name for name in _CONTENT_TYPES if message.get(name)), "other")
    command, payload, args = parse_command(text) if text.startswith("/") else ("", None, [])
    return MessageInfo(
        id=message.get("message_id", 0),
        text=text,
        date=message.get("date", 0),
        content_type=content_type,
        command=command or None,
        command_payload=payload,
        args=tuple(args),
        is_edited=is_edited,
    )


# ── Variants ─────────────────────────────────────────────────────────────────


class BaseContext:
    """Fields common to every context: the client and the raw update."""

    kind: Optional[str] = None

    def __init__(self, client: BotClient, update: dict) -> None:
        self.client = client
        self.update = update
        self.update_id: Optional[int] = update.get("update_id")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(update_id={self.update_id})"

    async def reply(self, text: str, **options: Any) -> Message:
        """Send *text* back to where the update came from."""
        raise TypeError(f"{type(self).__name__} has no chat to reply to")


class GenericContext(BaseContext):
    """Fallback for kinds without a dedicated context (polls, payments, …)."""

    def __init__(self, client: BotClient, update: dict) -> None:
        super().__init__(client, update)
        kinds = update_kinds(update)
        self.kind = kinds[0] if kinds else None


class MessageContext(BaseContext):
    """Context for ``message`` updates."""

    kind = "message"

    def __init__(self, client: BotClient, update: dict) -> None:
        super().__init__(client, update)
        message = update[self.kind]
        self.raw_message: dict = message
        self.chat = ChatInfo.from_message(message)
        self.message = _message_info(message, is_edited=self.kind == "edited_message")
        sender = message.get("from")
        self.user: Optional[UserInfo] = UserInfo.from_dict(sender) if sender else None

        self.chat_id: ChatIdLike = self.chat.id
        self.message_id: int = self.message.id
        self.text: str = self.message.text
        self.user_id: Optional[int] = self.user.id if self.user else None

    @property
    def command(self) -> Optional[str]:
        return self.message.command

    @property
    def command_payload(self) -> Optional[str]:
        return self.message.command_payload

    @property
    def args(self) -> tuple[str, ...]:
        return self.message.args

    def _thread_options(self, options: dict, as_reply: bool) -> dict:
        """Quote the message when *as_reply* and stay inside its forum topic."""
        options = dict(options)
        if as_reply:
            options.setdefault("reply_to_message_id", self.message_id)
        if self.chat.topic_id and not options.get("message_thread_id"):
            options["message_thread_id"] = self.chat.topic_id
        return options

    async def reply(self, text: str, *, as_reply: bool = False, **options: Any) -> Message:
        return await self.client.send_message(self.chat_id, text, **self._thread_options(options, as_reply))

    async def reply_with_photo(self, photo: str, *, as_reply: bool = False, **options: Any) -> Message:
        return await self.client.send_photo(self.chat_id, photo, **self._thread_options(options, as_reply))

    async def reply_with_document(self, document: str, *, as_reply: bool = False, **options: Any) -> Message:
        return await self.client.send_document(self.chat_id, document, **self._thread_options(options, as_reply))

    async def edit_text(self, text: str, **options: Any) -> Union[Message, bool]:
        return await self.client.edit_message_text(text, chat_id=self.chat_id, message_id=self.message_id, **options)

    async def delete_message(self) -> bool:
        return await self.client.delete_message(self.chat_id, self.message_id)

    async def forward_message(self, to_chat_id: ChatIdLike, **options: Any) -> Message:
        return await self.client.forward_message(to_chat_id, self.chat_id, self.message_id, **options)

    async def copy_message(self, to_chat_id: ChatIdLike, **options: Any) -> MessageId:
        return await self.client.copy_message(to_chat_id, self.chat_id, self.message_id, **options)

    async def get_chat(self) -> Chat:
        return await self.client.get_chat(self.chat_id)

    async def ban_chat_member(self, user_id: int, until_date: Optional[int] = None, revoke_messages: Optional[bool] = None) -> bool:
        return await self.client.ban_chat_member(self.chat_id, user_id, until_date, revoke_messages)

    async def unban_chat_member(self, user_id: int, only_if_banned: Optional[bool] = None) -> bool:
        return await self.client.unban_chat_member(self.chat_id, user_id, only_if_banned)

    async def restrict_chat_member(self, user_id: int, permissions: Union[ChatPermissions, dict], until_date: Optional[int] = None) -> bool:
        return await self.client.restrict_chat_member(self.chat_id, user_id, permissions, until_date)

    async def is_chat_member_of(self, chat_id: ChatIdLike, user_id: Optional[int] = None) -> ChatMember:
        """Look up *user_id* (default: the sender) in another chat."""
        target = user_id if user_id is not None else self.user_id
        if target is None:
            raise ValueError("Message has no sender to look up")
        return await self.client.get_chat_member(chat_id, target)

    async def create_forum_topic(self, name: str, **options: Any) -> ForumTopic:
        return await self.client.create_forum_topic(self.chat_id, name, **options)

    async def edit_forum_topic(self, message_thread_id: Optional[int] = None, **options: Any) -> bool:
        return await self.client.edit_forum_topic(self.chat_id, self._topic(message_thread_id), **options)

    async def close_forum_topic(self, message_thread_id: Optional[int] = None) -> bool:
        return await self.client.close_forum_topic(self.chat_id, self._topic(message_thread_id))

    async def reopen_forum_topic(self, message_thread_id: Optional[int] = None) -> bool:
        return await self.client.reopen_forum_topic(self.chat_id, self._topic(message_thread_id))

    async def delete_forum_topic(self, message_thread_id: Optional[int] = None) -> bool:
        return await self.client.delete_forum_topic(self.chat_id, self._topic(message_thread_id))

    def _topic(self, message_thread_id: Optional[int]) -> int:
        topic = message_thread_id if message_thread_id is not None else self.chat.topic_id
        if topic is None:
            raise ValueError("No forum topic: message is outside a topic and none was given")
        return topic


class EditedMessageContext(MessageContext):
    """Context for ``edited_message`` updates."""

    kind = "edited_message"


class CallbackQueryContext(BaseContext):
    """Context for ``callback_query`` updates.

    ``chat``, ``chat_id`` and ``message_id`` are ``None`` for buttons on
    inline-mode messages, which carry no message.
    """

    kind = "callback_query"

    def __init__(self, client: BotClient, update: dict) -> None:
        super().__init__(client, update)
        query = update[self.kind]
        self.callback_id: str = query.get("id", "")
        self.data: Optional[str] = query.get("data")
        self.inline_message_id: Optional[str] = query.get("inline_message_id")
        self.user = UserInfo.from_dict(query.get("from") or {})
        self.user_id: int = self.user.id

        original = query.get("message")
        self.chat: Optional[ChatInfo] = ChatInfo.from_message(original) if original else None
        self.message: Optional[MessageInfo] = _message_info(original) if original else None
        self.chat_id: Optional[ChatIdLike] = self.chat.id if self.chat else None
        self.message_id: Optional[int] = self.message.id if self.message else None

    async def answer(self, text: Optional[str] = None, **options: Any) -> bool:
        """Acknowledge the button press, optionally with a toast *text*."""
        return await self.client.answer_callback_query(self.callback_id, text, **options)

    async def reply(self, text: str, **options: Any) -> Message:
        if self.chat is None:
            raise ValueError("Callback query has no message to reply to")
        if self.chat.topic_id and not options.get("message_thread_id"):
            options["message_thread_id"] = self.chat.topic_id
        return await self.client.send_message(self.chat.id, text, **options)

    async def edit_text(self, text: str, **options: Any) -> Union[Message, bool]:
        """Edit the message carrying the button (or the inline message)."""
        if self.message_id is not None:
            return await self.client.edit_message_text(text, chat_id=self.chat_id, message_id=self.message_id, **options)
        return await self.client.edit_message_text(text, inline_message_id=self.inline_message_id, **options)

    async def edit_reply_markup(self, reply_markup: Optional[ReplyMarkup] = None, **options: Any) -> Union[Message, bool]:
        """Swap the keyboard under the pressed button; ``None`` removes it."""
        if self.message_id is not None:
            return await self.client.edit_message_reply_markup(
                reply_markup, chat_id=self.chat_id, message_id=self.message_id, **options,
            )
        return await self.client.edit_message_reply_markup(
            reply_markup, inline_message_id=self.inline_message_id, **options,
        )

    async def delete_message(self) -> bool:
        if self.chat_id is None or self.message_id is None:
            raise ValueError("Callback query has no message to delete")
        return await self.client.delete_message(self.chat_id, self.message_id)

    async def is_chat_member_of(self, chat_id: ChatIdLike) -> ChatMember:
        """Look up the user who pressed the button in *chat_id*."""
        return await self.client.get_chat_member(chat_id, self.user_id)

    async def ban_chat_member(self, user_id: int, until_date: Optional[int] = None, revoke_messages: Optional[bool] = None) -> bool:
        return await self.client.ban_chat_member(self._message_chat_id("ban"), user_id, until_date, revoke_messages)

    async def unban_chat_member(self, user_id: int, only_if_banned: Optional[bool] = None) -> bool:
        return await self.client.unban_chat_member(self._message_chat_id("unban"), user_id, only_if_banned)

    async def restrict_chat_member(
        self,
        permissions: Union[ChatPermissions, dict],
        until_date: Optional[int] = None,
        chat_id: Optional[ChatIdLike] = None,
    ) -> bool:
        """Restrict the user who pressed the button, in *chat_id* or the message's chat."""
        target = chat_id if chat_id is not None else self._message_chat_id("restrict")
        return await self.client.restrict_chat_member(target, self.user_id, permissions, until_date)

    def _message_chat_id(self, action: str) -> ChatIdLike:
        if self.chat_id is None:
            raise ValueError(f"Cannot {action} chat member: callback query has no message")
        return self.chat_id


class ChatMemberContext(BaseContext):
    """Context for ``chat_member`` and ``my_chat_member`` updates."""

    def __init__(self, client: BotClient, update: dict, kind: str = "chat_member") -> None:
        super().__init__(client, update)
        self.kind = kind
        member_update = update[kind]
        self.old_info: dict = member_update.get("old_chat_member") or {}
        self.new_info: dict = member_update.get("new_chat_member") or {}

        chat = member_update.get("chat") or {}
        self.chat = ChatInfo(id=chat.get("id", 0), type=chat.get("type", ""), title=chat.get("title"))
        self.chat_id: ChatIdLike = self.chat.id
        self.user = UserInfo.from_dict(self.new_info.get("user") or {})
        self.user_id: int = self.user.id
        actor = member_update.get("from")
        self.actor: Optional[UserInfo] = UserInfo.from_dict(actor) if actor else None

    @property
    def old_status(self) -> Optional[str]:
        return self.old_info.get("status")

    @property
    def new_status(self) -> Optional[str]:
        return self.new_info.get("status")

    def is_joining(self) -> bool:
        return is_join(self.old_info, self.new_info)

    def is_leaving(self) -> bool:
        return is_leave(self.old_info, self.new_info)

    def is_kicked(self) -> bool:
        return is_kick(self.old_info, self.new_info)

    def is_promoted(self) -> bool:
        return is_promote(self.old_info, self.new_info)

    def is_demoted(self) -> bool:
        return is_demote(self.old_info, self.new_info)

    async def reply(self, text: str, **options: Any) -> Message:
        return await self.client.send_message(self.chat_id, text, **options)

    async def ban_user(self, until_date: Optional[int] = None, revoke_messages: Optional[bool] = None) -> bool:
        return await self.client.ban_chat_member(self.chat_id, self.user_id, until_date, revoke_messages)

    async def unban_user(self, only_if_banned: Optional[bool] = None) -> bool:
        return await self.client.unban_chat_member(self.chat_id, self.user_id, only_if_banned)

    async def restrict_user(self, permissions: Union[ChatPermissions, dict], until_date: Optional[int] = None) -> bool:
        return await self.client.restrict_chat_member(self.chat_id, self.user_id, permissions, until_date)

    async def is_chat_member_of(self, chat_id: ChatIdLike) -> ChatMember:
        return await self.client.get_chat_member(chat_id, self.user_id)


class InlineQueryContext(BaseContext):
    """Context for ``inline_query`` updates."""

    kind = "inline_query"

    def __init__(self, client: BotClient, update: dict) -> None:
        super().__init__(client, update)
        query = update[self.kind]
        self.inline_query_id: str = query.get("id", "")
        self.query: str = query.get("query", "")
        self.offset: str = query.get("offset", "")
        self.chat_type: Optional[str] = query.get("chat_type")
        self.user = UserInfo.from_dict(query.get("from") or {})
        self.user_id: int = self.user.id

    async def answer(self, results: Sequence[InlineQueryResult], **options: Any) -> bool:
        return await self.client.answer_inline_query(self.inline_query_id, results, **options)

    async def is_chat_member_of(self, chat_id: ChatIdLike) -> ChatMember:
        return await self.client.get_chat_member(chat_id, self.user_id)

    @staticmethod
    def article_result(
        result_id: str,
        title: str,
        text: str,
        description: Optional[str] = None,
        **options: Any,
    ) -> InlineQueryResultArticle:
        """Build an article result that sends *text* when picked."""
        return InlineQueryResultArticle(
            id=result_id,
            title=title,
            description=description,
            input_message_content=InputTextMessageContent(message_text=text),
            **options,
        )

    @staticmethod
    def photo_result(
        result_id: str,
        photo_url: str,
        thumbnail_url: str,
        title: Optional[str] = None,
        **options: Any,
    ) -> InlineQueryResultPhoto:
        return InlineQueryResultPhoto(
            id=result_id, photo_url=photo_url, thumbnail_url=thumbnail_url, title=title, **options,
        )

    @staticmethod
    def document_result(
        result_id: str,
        title: str,
        document_url: str,
        thumbnail_url: Optional[str] = None,
        mime_type: str = "application/pdf",
        **options: Any,
    ) -> InlineQueryResultDocument:
        return InlineQueryResultDocument(
            id=result_id,
            title=title,
            document_url=document_url,
            thumbnail_url=thumbnail_url,
            mime_type=mime_type,
            **options,
        )

    @staticmethod
    def video_result(
        result_id: str,
        title: str,
        video_url: str,
        thumbnail_url: str,
        mime_type: str = "video/mp4",
        **options: Any,
    ) -> InlineQueryResultVideo:
        """Build a video result; Telegram accepts ``video/mp4`` or ``text/html``."""
        return InlineQueryResultVideo(
            id=result_id,
            title=title,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            mime_type=mime_type,
            **options,
        )

    @staticmethod
    def location_result(
        result_id: str,
        title: str,
        latitude: float,
        longitude: float,
        **options: Any,
    ) -> InlineQueryResultLocation:
        return InlineQueryResultLocation(
            id=result_id, title=title, latitude=latitude, longitude=longitude, **options,
        )


class ChosenInlineResultContext(BaseContext):
    """Context for ``chosen_inline_result`` updates."""

    kind = "chosen_inline_result"

    def __init__(self, client: BotClient, update: dict) -> None:
        super().__init__(client, update)
        chosen = update[self.kind]
        self.result_id: str = chosen.get("result_id", "")
        self.query: str = chosen.get("query", "")
        self.inline_message_id: Optional[str] = chosen.get("inline_message_id")
        self.location: Optional[dict] = chosen.get("location")
        self.user = UserInfo.from_dict(chosen.get("from") or {})
        self.user_id: int = self.user.id

    async def is_chat_member_of(self, chat_id: ChatIdLike) -> ChatMember:
        return await self.client.get_chat_member(chat_id, self.user_id)


# Classification order: the first populated field in this list decides.
_BUILDERS: tuple[tuple[str, Callable[[BotClient, dict], BaseContext]], ...] = (
    ("message", MessageContext),
    ("edited_message", EditedMessageContext),
    ("chat_member", lambda client, update: ChatMemberContext(client, update, "chat_member")),
    ("my_chat_member", lambda client, update: ChatMemberContext(client, update, "my_chat_member")),
    ("callback_query", CallbackQueryContext),
    ("inline_query", InlineQueryContext),
    ("chosen_inline_result", ChosenInlineResultContext),
)


def build_context(client: BotClient, update: dict) -> BaseContext:
    """Return the one context for *update*; falls back to :class:`GenericContext`.

    A payload too malformed for its dedicated context (e.g. a ``message``
    that is not an object) is logged and gets the generic context instead.
    """
    for field, builder in _BUILDERS:
        if not update.get(field):
            continue
        try:
            return builder(client, update)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Could not build context, using generic context",
                extra={"update_id": update.get("update_id"), "kind": field, "error": str(exc)},
            )
            break
    return GenericContext(client, update)
