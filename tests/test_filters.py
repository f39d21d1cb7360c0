"""Tests for the filter algebra in core.filters."""

import re
import sys
import os
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core import filters
from core.filters import Filter


# ── Helpers ──────────────────────────────────────────────────────────────────


def _message_update(text: str | None = "hello", chat_type: str = "private", chat_id: int = 42, user_id: int = 7) -> dict:
    message: dict = {"message_id": 1, "date": 0, "chat": {"id": chat_id, "type": chat_type}, "from": {"id": user_id}}
    if text is not None:
        message["text"] = text
    return {"update_id": 1, "message": message}


def _callback_update(data: str | None = "yes", chat_type: str = "group", with_message: bool = True) -> dict:
    query: dict = {"id": "cb1", "from": {"id": 9}, "chat_instance": "x"}
    if data is not None:
        query["data"] = data
    if with_message:
        query["message"] = {"message_id": 5, "date": 0, "chat": {"id": -100, "type": chat_type}}
    return {"update_id": 2, "callback_query": query}


def _member_update(old: str, new: str, *, kind: str = "chat_member", old_is_member: bool | None = None) -> dict:
    old_member: dict = {"user": {"id": 11}, "status": old}
    if old_is_member is not None:
        old_member["is_member"] = old_is_member
    return {
        "update_id": 3,
        kind: {
            "chat": {"id": -200, "type": "supergroup"},
            "from": {"id": 12},
            "date": 0,
            "old_chat_member": old_member,
            "new_chat_member": {"user": {"id": 11}, "status": new},
        },
    }


def _const(value: bool, events: set[str] | None = None) -> Filter:
    return Filter(lambda update: value, frozenset(events) if events is not None else None)


# ── Text / command primitives ────────────────────────────────────────────────


class TestTextFilters:
    """Validate text, text_matches, and command."""

    def test_text_exact(self) -> None:
        flt = filters.text("hello")
        assert flt(_message_update("hello")) is True
        assert flt(_message_update("Hello")) is False
        assert flt(_message_update(" hello")) is False

    def test_text_without_text_field(self) -> None:
        assert filters.text("hello")(_message_update(None)) is False

    def test_text_ignores_callback_updates(self) -> None:
        assert filters.text("yes")(_callback_update("yes")) is False

    def test_text_matches_string_and_compiled(self) -> None:
        assert filters.text_matches(r"^I like (you|this bot)")(_message_update("I like you")) is True
        assert filters.text_matches(re.compile("bot", re.I))(_message_update("Nice BOT")) is True
        assert filters.text_matches("xyz")(_message_update("abc")) is False

    def test_compatible_events(self) -> None:
        assert filters.text("a").compatible_events == {"message"}
        assert filters.text_matches("a").compatible_events == {"message"}
        assert filters.command("a").compatible_events == {"message"}

    @pytest.mark.parametrize("text", ["/start", "/start@mybot", "/start extra text", "/start\nmore"])
    def test_command_matches(self, text: str) -> None:
        assert filters.command("start")(_message_update(text)) is True

    @pytest.mark.parametrize("text", ["/starting", "start", " /start", "/start@", "/stop"])
    def test_command_rejects(self, text: str) -> None:
        assert filters.command("start")(_message_update(text)) is False

    def test_command_name_is_escaped(self) -> None:
        assert filters.command("a.b")(_message_update("/a.b")) is True
        assert filters.command("a.b")(_message_update("/axb")) is False


# ── Callback primitives ──────────────────────────────────────────────────────


class TestCallbackFilters:
    """Validate callback_data and callback_data_matches."""

    def test_callback_data(self) -> None:
        assert filters.callback_data("yes")(_callback_update("yes")) is True
        assert filters.callback_data("yes")(_callback_update("no")) is False
        assert filters.callback_data("yes")(_callback_update(None)) is False

    def test_callback_data_matches(self) -> None:
        flt = filters.callback_data_matches(r"^number_\d+$")
        assert flt(_callback_update("number_12")) is True
        assert flt(_callback_update("number_x")) is False
        assert flt(_message_update("number_1")) is False

    def test_compatible_events(self) -> None:
        assert filters.callback_data("x").compatible_events == {"callback_query"}
        assert filters.callback_data_matches("x").compatible_events == {"callback_query"}


# ── Chat / user primitives ───────────────────────────────────────────────────


class TestChatAndUserFilters:
    """Validate chat_type, chat_id, and user_id resolution."""

    def test_chat_type_message(self) -> None:
        assert filters.chat_type("private")(_message_update()) is True
        assert filters.chat_type("group")(_message_update()) is False

    def test_chat_type_several(self) -> None:
        flt = filters.chat_type("group", "supergroup")
        assert flt(_message_update(chat_type="supergroup")) is True
        assert flt(_message_update(chat_type="private")) is False

    def test_chat_type_callback_uses_message_chat(self) -> None:
        assert filters.chat_type("group")(_callback_update(chat_type="group")) is True

    def test_chat_type_callback_without_message(self) -> None:
        assert filters.chat_type("group")(_callback_update(with_message=False)) is False

    def test_chat_type_chat_member(self) -> None:
        assert filters.chat_type("supergroup")(_member_update("left", "member")) is True

    def test_chat_type_unresolvable(self) -> None:
        update = {"update_id": 4, "inline_query": {"id": "q", "from": {"id": 1}, "query": ""}}
        assert filters.chat_type("private")(update) is False

    def test_chat_type_requires_types(self) -> None:
        with pytest.raises(ValueError):
            filters.chat_type()

    def test_chat_id_single_and_many(self) -> None:
        assert filters.chat_id(42)(_message_update(chat_id=42)) is True
        assert filters.chat_id([1, 2, 42])(_message_update(chat_id=42)) is True
        assert filters.chat_id({1, 2})(_message_update(chat_id=42)) is False

    def test_user_id(self) -> None:
        assert filters.user_id(7)(_message_update(user_id=7)) is True
        assert filters.user_id([8, 9])(_callback_update()) is True
        assert filters.user_id(12)(_member_update("left", "member")) is True
        assert filters.user_id(1)(_message_update(user_id=7)) is False

    def test_id_filters_accept_any_iterable(self) -> None:
        assert filters.user_id(frozenset({7}))(_message_update(user_id=7)) is True
        assert filters.user_id(uid for uid in (1, 7))(_message_update(user_id=7)) is True
        assert filters.chat_id((41, 42))(_message_update(chat_id=42)) is True

    def test_user_id_without_sender(self) -> None:
        update = _message_update()
        del update["message"]["from"]
        assert filters.user_id(7)(update) is False

    def test_compatible_events(self) -> None:
        assert {"message", "callback_query", "chat_member"} <= filters.chat_type("group").compatible_events
        assert {"message", "callback_query", "chat_member"} <= filters.user_id(1).compatible_events


# ── Membership transitions ───────────────────────────────────────────────────


class TestMembershipFilters:
    """Validate the membership transition table."""

    def test_left_to_member_is_join(self) -> None:
        update = _member_update("left", "member")
        assert filters.new_chat_members()(update) is True
        assert filters.left_chat_member()(update) is False
        assert filters.kicked_chat_member()(update) is False

    def test_member_to_kicked(self) -> None:
        update = _member_update("member", "kicked")
        assert filters.kicked_chat_member()(update) is True
        assert filters.new_chat_members()(update) is False
        assert filters.left_chat_member()(update) is False

    def test_administrator_to_left(self) -> None:
        update = _member_update("administrator", "left")
        assert filters.left_chat_member()(update) is True
        assert filters.kicked_chat_member()(update) is False

    def test_kicked_to_restricted_is_join(self) -> None:
        assert filters.new_chat_members()(_member_update("kicked", "restricted")) is True

    def test_restricted_non_member_rejoining(self) -> None:
        assert filters.new_chat_members()(_member_update("restricted", "member", old_is_member=False)) is True
        assert filters.new_chat_members()(_member_update("restricted", "member", old_is_member=True)) is False

    def test_promote_and_demote(self) -> None:
        assert filters.promoted_chat_member()(_member_update("member", "administrator")) is True
        assert filters.demoted_chat_member()(_member_update("administrator", "restricted")) is True
        assert filters.promoted_chat_member()(_member_update("administrator", "creator")) is False
        assert filters.demoted_chat_member()(_member_update("creator", "administrator")) is False

    def test_my_chat_member_is_supported(self) -> None:
        assert filters.new_chat_members()(_member_update("left", "member", kind="my_chat_member")) is True

    def test_non_member_update(self) -> None:
        assert filters.new_chat_members()(_message_update()) is False

    def test_unknown_change(self) -> None:
        with pytest.raises(ValueError):
            filters.member_status_change("teleport")

    def test_compatible_events(self) -> None:
        assert "chat_member" in filters.new_chat_members().compatible_events
        assert "message" not in filters.left_chat_member().compatible_events


# ── path_equals ──────────────────────────────────────────────────────────────


class TestPathEquals:
    """Validate the dotted-path equality primitive."""

    def test_all_pairs_must_match(self) -> None:
        flt = filters.path_equals([("message.chat.id", 42), ("message.from.id", 7)])
        assert flt(_message_update()) is True
        assert flt(_message_update(user_id=8)) is False

    def test_missing_segment(self) -> None:
        assert filters.path_equals([("message.reply_to_message.text", "x")])(_message_update()) is False

    def test_untagged(self) -> None:
        assert filters.path_equals([]).compatible_events is None


# ── Combinators ──────────────────────────────────────────────────────────────


class TestCombinators:
    """Validate and_, or_, not_, custom, and operator sugar."""

    def test_and_short_circuits(self) -> None:
        explode = MagicMock(side_effect=AssertionError("must not be evaluated"))
        flt = filters.and_([_const(False), filters.custom(explode)])
        assert flt({"update_id": 1}) is False
        explode.assert_not_called()

    def test_or_short_circuits(self) -> None:
        explode = MagicMock(side_effect=AssertionError("must not be evaluated"))
        flt = filters.or_([_const(True), filters.custom(explode)])
        assert flt({"update_id": 1}) is True
        explode.assert_not_called()

    def test_and_evaluates_in_order(self) -> None:
        calls: list[str] = []
        first = filters.custom(lambda u: calls.append("first") or True)
        second = filters.custom(lambda u: calls.append("second") or True)
        assert filters.and_([first, second])({}) is True
        assert calls == ["first", "second"]

    def test_empty_and_or(self) -> None:
        assert filters.and_([])({"update_id": 1}) is True
        assert filters.or_([])({"update_id": 1}) is False

    def test_tag_union(self) -> None:
        flt = filters.and_([_const(True, {"message"}), _const(True, {"callback_query"})])
        assert flt.compatible_events == {"message", "callback_query"}
        flt = filters.or_([_const(True, {"callback_query"}), _const(True, {"message", "callback_query"})])
        assert flt.compatible_events == {"message", "callback_query"}

    def test_untagged_operands_add_nothing(self) -> None:
        assert filters.and_([_const(True, {"message"}), _const(True)]).compatible_events == {"message"}
        assert filters.or_([_const(True), _const(False)]).compatible_events is None

    def test_not(self) -> None:
        flt = filters.not_(filters.chat_type("private"))
        assert flt(_message_update(chat_type="private")) is False
        assert flt(_message_update(chat_type="group")) is True
        assert flt.compatible_events == filters.chat_type("private").compatible_events

    def test_custom_with_events(self) -> None:
        flt = filters.custom_with_events(lambda u: "poll" in u, ["poll"])
        assert flt.compatible_events == {"poll"}
        assert flt({"update_id": 1, "poll": {"id": "p"}}) is True
        assert filters.custom(lambda u: True).compatible_events is None

    def test_result_coerced_to_bool(self) -> None:
        assert filters.custom(lambda u: u.get("message"))({"message": {"text": "x"}}) is True
        assert filters.custom(lambda u: None)({}) is False

    def test_operators(self) -> None:
        flt = filters.text("hi") | filters.text("hello")
        assert flt(_message_update("hello")) is True
        flt = filters.chat_type("private") & ~filters.text("hi")
        assert flt(_message_update("hello")) is True
        assert flt(_message_update("hi")) is False

    def test_operands_not_mutated(self) -> None:
        left = _const(True, {"message"})
        right = _const(True, {"callback_query"})
        filters.and_([left, right])
        assert left.compatible_events == {"message"}
        assert right.compatible_events == {"callback_query"}

    def test_filters_are_frozen(self) -> None:
        flt = filters.text("x")
        with pytest.raises(AttributeError):
            flt.compatible_events = None  # type: ignore[misc]


class TestIndependentConstruction:
    """Two filters built from identical arguments are independent values."""

    def test_same_arguments_same_behaviour(self) -> None:
        first = filters.command("start")
        second = filters.command("start")
        assert first is not second
        for text in ("/start", "/starting", "/start@bot x"):
            assert first(_message_update(text)) == second(_message_update(text))

    def test_id_collections_are_copied(self) -> None:
        ids = [1, 2]
        flt = filters.chat_id(ids)
        ids.append(42)
        assert flt(_message_update(chat_id=42)) is False
