"""Pydantic models for the Telegram Bot API objects edgegram reads and returns.

Only the objects that the dispatcher, the contexts, and the typed client
methods touch are modelled.  Every model allows unknown fields, so newer
Bot API payloads validate without changes here.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


class TelegramObject(BaseModel):
    """Common configuration: accept aliases by name and keep unknown fields."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    def to_api(self) -> dict[str, Any]:
        """Serialise for a request payload (aliases, no ``None`` values)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class User(TelegramObject):
    """A Telegram user or bot."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: Optional[bool] = None


class Chat(TelegramObject):
    """A chat: ``private``, ``group``, ``supergroup`` or ``channel``."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_forum: Optional[bool] = None


class MessageEntity(TelegramObject):
    """One special entity in a text message (command, mention, URL, …)."""

    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional[User] = None
    language: Optional[str] = None


class PhotoSize(TelegramObject):
    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None


class Document(TelegramObject):
    file_id: str
    file_unique_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class Sticker(TelegramObject):
    file_id: str
    file_unique_id: str
    type: str = "regular"
    width: int = 0
    height: int = 0
    is_animated: bool = False
    is_video: bool = False
    emoji: Optional[str] = None
    custom_emoji_id: Optional[str] = None


class Location(TelegramObject):
    latitude: float
    longitude: float


class InlineKeyboardButton(TelegramObject):
    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None
    switch_inline_query: Optional[str] = None
    switch_inline_query_current_chat: Optional[str] = None


class InlineKeyboardMarkup(TelegramObject):
    inline_keyboard: List[List[InlineKeyboardButton]]


class Message(TelegramObject):
    """A message.  ``from`` is exposed as ``from_field``."""

    message_id: int
    date: int
    chat: Chat
    message_thread_id: Optional[int] = None
    from_field: Optional[User] = Field(None, alias="from")
    sender_chat: Optional[Chat] = None
    is_topic_message: Optional[bool] = None
    reply_to_message: Optional[Message] = None
    edit_date: Optional[int] = None
    text: Optional[str] = None
    entities: Optional[List[MessageEntity]] = None
    caption: Optional[str] = None
    photo: Optional[List[PhotoSize]] = None
    document: Optional[Document] = None
    sticker: Optional[Sticker] = None
    location: Optional[Location] = None
    new_chat_members: Optional[List[User]] = None
    left_chat_member: Optional[User] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class MessageId(TelegramObject):
    """Identifier returned by ``copyMessage``."""

    message_id: int


class CallbackQuery(TelegramObject):
    """A press on an inline keyboard button."""

    id: str
    from_field: User = Field(..., alias="from")
    chat_instance: str = ""
    message: Optional[Message] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None
    game_short_name: Optional[str] = None


class ChatPermissions(TelegramObject):
    """Actions a non-administrator member may take in a chat."""

    can_send_messages: Optional[bool] = None
    can_send_audios: Optional[bool] = None
    can_send_documents: Optional[bool] = None
    can_send_photos: Optional[bool] = None
    can_send_videos: Optional[bool] = None
    can_send_video_notes: Optional[bool] = None
    can_send_voice_notes: Optional[bool] = None
    can_send_polls: Optional[bool] = None
    can_send_other_messages: Optional[bool] = None
    can_add_web_page_previews: Optional[bool] = None
    can_change_info: Optional[bool] = None
    can_invite_users: Optional[bool] = None
    can_pin_messages: Optional[bool] = None
    can_manage_topics: Optional[bool] = None


class ChatMember(TelegramObject):
    """One member of a chat.  ``status`` discriminates the Bot API variants."""

    user: User
    status: str
    is_member: Optional[bool] = None
    is_anonymous: Optional[bool] = None
    custom_title: Optional[str] = None
    until_date: Optional[int] = None
    can_be_edited: Optional[bool] = None
    can_manage_chat: Optional[bool] = None
    can_delete_messages: Optional[bool] = None
    can_restrict_members: Optional[bool] = None
    can_promote_members: Optional[bool] = None
    can_manage_topics: Optional[bool] = None


class ChatMemberUpdated(TelegramObject):
    """Payload of ``chat_member`` / ``my_chat_member`` updates."""

    chat: Chat
    from_field: User = Field(..., alias="from")
    date: int
    old_chat_member: ChatMember
    new_chat_member: ChatMember


class InlineQuery(TelegramObject):
    id: str
    from_field: User = Field(..., alias="from")
    query: str = ""
    offset: str = ""
    chat_type: Optional[str] = None
    location: Optional[Location] = None


class ChosenInlineResult(TelegramObject):
    result_id: str
    from_field: User = Field(..., alias="from")
    query: str = ""
    location: Optional[Location] = None
    inline_message_id: Optional[str] = None


class InputTextMessageContent(TelegramObject):
    message_text: str
    parse_mode: Optional[str] = None


class InlineQueryResultArticle(TelegramObject):
    """Article result for ``answerInlineQuery``."""

    type: str = "article"
    id: str
    title: str
    input_message_content: InputTextMessageContent
    description: Optional[str] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class InlineQueryResultPhoto(TelegramObject):
    type: str = "photo"
    id: str
    photo_url: str
    thumbnail_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    caption: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class InlineQueryResultDocument(TelegramObject):
    type: str = "document"
    id: str
    title: str
    document_url: str
    mime_type: str = "application/pdf"
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    caption: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class InlineQueryResultVideo(TelegramObject):
    type: str = "video"
    id: str
    title: str
    video_url: str
    thumbnail_url: str
    mime_type: str = "video/mp4"
    description: Optional[str] = None
    caption: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class InlineQueryResultLocation(TelegramObject):
    type: str = "location"
    id: str
    title: str
    latitude: float
    longitude: float
    live_period: Optional[int] = None
    thumbnail_url: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None


class ForumTopic(TelegramObject):
    """A topic in a forum supergroup."""

    message_thread_id: int
    name: str
    icon_color: int
    icon_custom_emoji_id: Optional[str] = None


class WebhookInfo(TelegramObject):
    url: str
    has_custom_certificate: bool
    pending_update_count: int
    ip_address: Optional[str] = None
    last_error_date: Optional[int] = None
    last_error_message: Optional[str] = None
    max_connections: Optional[int] = None
    allowed_updates: Optional[List[str]] = None


class Update(TelegramObject):
    """An incoming update.  At most one of the optional fields is set.

    :attr:`kinds` reports which fields are populated, including any field
    this model does not declare.
    """

    update_id: int
    message: Optional[Message] = None
    edited_message: Optional[Message] = None
    channel_post: Optional[Message] = None
    edited_channel_post: Optional[Message] = None
    inline_query: Optional[InlineQuery] = None
    chosen_inline_result: Optional[ChosenInlineResult] = None
    callback_query: Optional[CallbackQuery] = None
    my_chat_member: Optional[ChatMemberUpdated] = None
    chat_member: Optional[ChatMemberUpdated] = None

    @property
    def kinds(self) -> list[str]:
        """Populated fields other than ``update_id``, in field order."""
        data = self.model_dump(exclude_none=True)
        return [key for key, value in data.items() if key != "update_id" and value]

    @property
    def kind(self) -> Optional[str]:
        """The first populated kind, or ``None`` for an empty update."""
        kinds = self.kinds
        return kinds[0] if kinds else None


InlineQueryResult = Union[
    InlineQueryResultArticle,
    InlineQueryResultPhoto,
    InlineQueryResultDocument,
    InlineQueryResultVideo,
    InlineQueryResultLocation,
    dict,
]
