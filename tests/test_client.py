"""Tests for BotClient and APIException."""

import sys
import os
from unittest.mock import patch, MagicMock

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sdk.client import BotClient
from sdk.exceptions import APIException
from sdk.models import (
    ChatPermissions,
    ForumTopic,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQueryResultArticle,
    InputTextMessageContent,
    Message,
    User,
)

TOKEN = "123:abc"


def _response(body, ok: bool = True, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.ok = ok
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


def _sent_payload(mock_post: MagicMock) -> dict:
    return mock_post.call_args.kwargs["json"]


# ── APIException ─────────────────────────────────────────────────────────────


class TestAPIException:
    """Validate the exception raised for not-ok calls."""

    def test_attributes(self) -> None:
        exc = APIException("Forbidden", 403, {"ok": False, "description": "Forbidden"})
        assert exc.error_code == 403
        assert exc.description == "Forbidden"
        assert "403" in str(exc)
        assert "Forbidden" in str(exc)

    def test_default_body(self) -> None:
        exc = APIException("Bad")
        assert exc.response_body == {}
        assert exc.error_code is None
        assert exc.retry_after is None

    def test_retry_after(self) -> None:
        exc = APIException.from_response(429, {
            "ok": False,
            "error_code": 429,
            "description": "Too Many Requests",
            "parameters": {"retry_after": 7},
        })
        assert exc.retry_after == 7

    def test_from_response_falls_back_to_status(self) -> None:
        exc = APIException.from_response(502, None)
        assert exc.error_code == 502
        assert exc.description == "Unknown error"

    def test_is_exception(self) -> None:
        assert issubclass(APIException, Exception)


# ── BotClient construction ───────────────────────────────────────────────────


class TestClientInit:
    """Validate client initialisation."""

    def test_base_url(self) -> None:
        c = BotClient(TOKEN, base_url="http://localhost:8081/")
        assert c._base_url == "http://localhost:8081/bot123:abc"

    def test_default_timeout(self) -> None:
        assert BotClient(TOKEN)._timeout == 10

    def test_custom_timeout(self) -> None:
        assert BotClient(TOKEN, timeout=30)._timeout == 30

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValueError):
            BotClient("")

    def test_repr_hides_token(self) -> None:
        assert TOKEN not in repr(BotClient(TOKEN))


# ── _post helper ─────────────────────────────────────────────────────────────


class TestPostHelper:
    """Validate the internal _post method."""

    @patch("sdk.client.requests.post")
    def test_success_returns_result(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"id": 1}})

        result = BotClient(TOKEN)._post("getMe")

        assert result == {"id": 1}
        assert mock_post.call_args.args[0] == "https://api.telegram.org/bot123:abc/getMe"
        assert mock_post.call_args.kwargs["timeout"] == 10

    @patch("sdk.client.requests.post")
    def test_not_ok_raises(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": False, "error_code": 400, "description": "Bad Request"})

        with pytest.raises(APIException) as exc_info:
            BotClient(TOKEN)._post("sendMessage", {"chat_id": 1})
        assert exc_info.value.error_code == 400
        assert exc_info.value.description == "Bad Request"

    @patch("sdk.client.requests.post")
    def test_http_error_raises(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response(
            {"ok": False, "description": "Unauthorized"}, ok=False, status_code=401,
        )

        with pytest.raises(APIException) as exc_info:
            BotClient(TOKEN)._post("getMe")
        assert exc_info.value.error_code == 401

    @patch("sdk.client.requests.post")
    def test_non_json_body_raises(self, mock_post: MagicMock) -> None:
        resp = _response(None, ok=False, status_code=502)
        resp.json.side_effect = ValueError("No JSON")
        mock_post.return_value = resp

        with pytest.raises(APIException) as exc_info:
            BotClient(TOKEN)._post("getMe")
        assert exc_info.value.error_code == 502
        assert exc_info.value.description == "Unknown error"

    @patch("sdk.client.requests.post")
    def test_network_error_propagates(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = requests.ConnectionError("offline")

        with pytest.raises(requests.ConnectionError):
            BotClient(TOKEN)._post("getMe")


# ── Generic call ─────────────────────────────────────────────────────────────


class TestCall:
    """Validate the generic async call."""

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_drops_none_values(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})

        result = await BotClient(TOKEN).call("setMyCommands", {"commands": [], "scope": None})

        assert result is True
        assert _sent_payload(mock_post) == {"commands": []}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_serialises_models(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})

        await BotClient(TOKEN).call("restrictChatMember", {
            "chat_id": -1,
            "user_id": 2,
            "permissions": ChatPermissions(can_send_messages=False),
        })

        assert _sent_payload(mock_post)["permissions"] == {"can_send_messages": False}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_per_call_timeout(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": []})

        await BotClient(TOKEN).call("getUpdates", timeout=45)

        assert mock_post.call_args.kwargs["timeout"] == 45


# ── Typed methods ────────────────────────────────────────────────────────────


class TestTypedMethods:
    """Spot-check the typed wrappers."""

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_get_me(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"id": 1, "is_bot": True, "first_name": "Bot"}})

        me = await BotClient(TOKEN).get_me()

        assert isinstance(me, User)
        assert me.is_bot is True

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_send_message(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({
            "ok": True,
            "result": {"message_id": 5, "date": 0, "chat": {"id": 42, "type": "private"}, "text": "hello"},
        })

        msg = await BotClient(TOKEN).send_message(42, "hello", message_thread_id=3)

        assert isinstance(msg, Message)
        assert msg.message_id == 5
        assert _sent_payload(mock_post) == {"chat_id": 42, "text": "hello", "message_thread_id": 3}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_get_updates_extends_timeout(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": [{"update_id": 1}]})

        updates = await BotClient(TOKEN).get_updates(offset=1, timeout=30)

        assert updates == [{"update_id": 1}]
        assert mock_post.call_args.kwargs["timeout"] == 40
        assert _sent_payload(mock_post) == {"offset": 1, "timeout": 30}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_edit_inline_message_returns_bool(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})

        result = await BotClient(TOKEN).edit_message_text("new", inline_message_id="abc")

        assert result is True
        assert _sent_payload(mock_post) == {"text": "new", "inline_message_id": "abc"}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_edit_message_reply_markup(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({
            "ok": True,
            "result": {"message_id": 11, "date": 0, "chat": {"id": 42, "type": "private"}},
        })
        markup = InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text="Back", callback_data="back")]])

        msg = await BotClient(TOKEN).edit_message_reply_markup(markup, chat_id=42, message_id=11)

        assert isinstance(msg, Message)
        assert mock_post.call_args.args[0].endswith("/editMessageReplyMarkup")
        assert _sent_payload(mock_post) == {
            "chat_id": 42,
            "message_id": 11,
            "reply_markup": {"inline_keyboard": [[{"text": "Back", "callback_data": "back"}]]},
        }

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_remove_reply_markup_inline(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})

        result = await BotClient(TOKEN).edit_message_reply_markup(inline_message_id="inl")

        assert result is True
        assert _sent_payload(mock_post) == {"inline_message_id": "inl"}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_answer_inline_query_serialises_results(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})
        article = InlineQueryResultArticle(
            id="1", title="Hi", input_message_content=InputTextMessageContent(message_text="hi"),
        )

        await BotClient(TOKEN).answer_inline_query("q1", [article], cache_time=0)

        payload = _sent_payload(mock_post)
        assert payload["results"] == [
            {"type": "article", "id": "1", "title": "Hi", "input_message_content": {"message_text": "hi"}},
        ]
        assert payload["cache_time"] == 0

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_create_forum_topic(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({
            "ok": True,
            "result": {"message_thread_id": 9, "name": "News", "icon_color": 7322096},
        })

        topic = await BotClient(TOKEN).create_forum_topic(-100, "News")

        assert isinstance(topic, ForumTopic)
        assert topic.message_thread_id == 9

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_ban_chat_member_api_error(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response(
            {"ok": False, "error_code": 400, "description": "Bad Request: not enough rights"},
            ok=False, status_code=400,
        )

        with pytest.raises(APIException):
            await BotClient(TOKEN).ban_chat_member(-100, 2)
