"""Filter algebra for selecting which handlers run for an update.

A :class:`Filter` pairs a predicate over the raw update dict with the set of
update kinds it makes sense for.  Primitive factories (:func:`text`,
:func:`command`, :func:`chat_type`, …) close over their arguments and return
a new ``Filter``; combinators (:func:`and_`, :func:`or_`, :func:`not_`)
build new filters from existing ones and merge their kind tags.  Nothing
here mutates its operands.

Usage::

    from core import filters

    admin_only = filters.and_([filters.chat_type("private"), filters.user_id([1, 2])])
    dispatcher.register("message", on_stats, filters.command("stats") & admin_only)

The dispatcher checks ``compatible_events`` once, at registration time; it
is not consulted while matching.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Callable, Iterable, Pattern, Sequence

from core.resolve import CHAT_KINDS, USER_KINDS, get_chat, get_member_update, get_path, get_user

Predicate = Callable[[dict], Any]

MEMBER_KINDS: frozenset[str] = frozenset({"chat_member", "my_chat_member"})

# ── Membership transition table ──────────────────────────────────────────────
#
#   join     old ∈ {left, kicked} (or restricted with is_member=False)
#            new ∈ {member, administrator, restricted}
#   leave    old ∈ {member, administrator, restricted}, new = left
#   kick     old ∈ {member, administrator, restricted}, new = kicked
#   promote  old ∈ {member, restricted},                new = administrator
#   demote   old = administrator,                      new ∈ {member, restricted}
#
# ``creator`` takes part in none of them.

_PRESENT = frozenset({"member", "administrator", "restricted"})
_ABSENT = frozenset({"left", "kicked"})


def _was_absent(old: dict) -> bool:
    status = old.get("status")
    if status in _ABSENT:
        return True
    return status == "restricted" and old.get("is_member") is False


def is_join(old: dict, new: dict) -> bool:
    """True when *old* → *new* is someone entering the chat."""
    return _was_absent(old) and new.get("status") in _PRESENT


def is_leave(old: dict, new: dict) -> bool:
    """True when a present member left on their own."""
    return old.get("status") in _PRESENT and new.get("status") == "left"


def is_kick(old: dict, new: dict) -> bool:
    """True when a present member was banned."""
    return old.get("status") in _PRESENT and new.get("status") == "kicked"


def is_promote(old: dict, new: dict) -> bool:
    return old.get("status") in ("member", "restricted") and new.get("status") == "administrator"


def is_demote(old: dict, new: dict) -> bool:
    return old.get("status") == "administrator" and new.get("status") in ("member", "restricted")


_TRANSITIONS: dict[str, Callable[[dict, dict], bool]] = {
    "join": is_join,
    "leave": is_leave,
    "kick": is_kick,
    "promote": is_promote,
    "demote": is_demote,
}


# ── Filter record ────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, slots=True)
class Filter:
    """A predicate over a raw update plus the update kinds it applies to.

    ``compatible_events`` of ``None`` means the filter may be attached to any
    kind.  Calling the filter always yields a ``bool``.
    """

    predicate: Predicate
    compatible_events: frozenset[str] | None = None

    def __call__(self, update: dict) -> bool:
        return bool(self.predicate(update))

    def __and__(self, other: Filter) -> Filter:
        return and_([self, other])

    def __or__(self, other: Filter) -> Filter:
        return or_([self, other])

    def __invert__(self) -> Filter:
        return not_(self)


def _merge_events(operands: Sequence[Filter]) -> frozenset[str] | None:
    """Union of the operands' kind tags; untagged operands add nothing."""
    tagged = [f.compatible_events for f in operands if f.compatible_events is not None]
    if not tagged:
        return None
    return frozenset().union(*tagged)


def _as_pattern(regex: str | Pattern[str]) -> Pattern[str]:
    return regex if isinstance(regex, re.Pattern) else re.compile(regex)


def _as_id_set(ids: int | str | Iterable[int | str]) -> frozenset[int | str]:
    if isinstance(ids, (int, str)):
        return frozenset({ids})
    return frozenset(ids)


def _message_text(update: dict) -> str | None:
    message = update.get("message")
    if not message:
        return None
    text = message.get("text")
    return text if isinstance(text, str) else None


def _callback_data(update: dict) -> str | None:
    callback_query = update.get("callback_query")
    if not callback_query:
        return None
    data = callback_query.get("data")
    return data if isinstance(data, str) else None


# ── Message primitives ───────────────────────────────────────────────────────


def text(expected: str) -> Filter:
    """Message text equals *expected* exactly (case-sensitive, untrimmed)."""
    def predicate(update: dict) -> bool:
        return _message_text(update) == expected
    return Filter(predicate, frozenset({"message"}))


def text_matches(regex: str | Pattern[str]) -> Filter:
    """Message text contains a match for *regex* (``re.search`` semantics)."""
    pattern = _as_pattern(regex)

    def predicate(update: dict) -> bool:
        value = _message_text(update)
        return value is not None and pattern.search(value) is not None
    return Filter(predicate, frozenset({"message"}))


def command(name: str) -> Filter:
    """Message is ``/name``, optionally ``/name@bot``, then whitespace or end.

    ``command("start")`` matches ``"/start"``, ``"/start@mybot"`` and
    ``"/start now"``, but not ``"/starting"``.
    """
    pattern = re.compile(rf"^/{re.escape(name)}(?:@\w+)?(?:\s|$)")

    def predicate(update: dict) -> bool:
        value = _message_text(update)
        return value is not None and pattern.match(value) is not None
    return Filter(predicate, frozenset({"message"}))


# ── Callback query primitives ────────────────────────────────────────────────


def callback_data(expected: str) -> Filter:
    """Callback query data equals *expected* exactly."""
    def predicate(update: dict) -> bool:
        return _callback_data(update) == expected
    return Filter(predicate, frozenset({"callback_query"}))


def callback_data_matches(regex: str | Pattern[str]) -> Filter:
    """Callback query data contains a match for *regex*."""
    pattern = _as_pattern(regex)

    def predicate(update: dict) -> bool:
        value = _callback_data(update)
        return value is not None and pattern.search(value) is not None
    return Filter(predicate, frozenset({"callback_query"}))


# ── Chat / user primitives ───────────────────────────────────────────────────


def chat_type(*types: str) -> Filter:
    """Resolved chat's type is one of *types* (``private``, ``group``, …)."""
    if not types:
        raise ValueError("chat_type() needs at least one chat type")
    allowed = frozenset(types)

    def predicate(update: dict) -> bool:
        chat = get_chat(update)
        return chat is not None and chat.get("type") in allowed
    return Filter(predicate, CHAT_KINDS)


def chat_id(ids: int | str | Iterable[int | str]) -> Filter:
    """Resolved chat's id is *ids* (a single id or any of a collection)."""
    allowed = _as_id_set(ids)

    def predicate(update: dict) -> bool:
        chat = get_chat(update)
        return chat is not None and chat.get("id") in allowed
    return Filter(predicate, CHAT_KINDS)


def user_id(ids: int | str | Iterable[int | str]) -> Filter:
    """Sender's id is *ids* (a single id or any of a collection)."""
    allowed = _as_id_set(ids)

    def predicate(update: dict) -> bool:
        user = get_user(update)
        return user is not None and user.get("id") in allowed
    return Filter(predicate, USER_KINDS)


# ── Membership primitives ────────────────────────────────────────────────────


def member_status_change(change: str) -> Filter:
    """Chat-member update whose old → new status pair is *change*.

    *change* is one of ``join``, ``leave``, ``kick``, ``promote``,
    ``demote``.
    """
    try:
        transition = _TRANSITIONS[change]
    except KeyError:
        raise ValueError(
            f"Unknown status change {change!r}; expected one of {sorted(_TRANSITIONS)}"
        ) from None

    def predicate(update: dict) -> bool:
        member_update = get_member_update(update)
        if member_update is None:
            return False
        old = member_update.get("old_chat_member") or {}
        new = member_update.get("new_chat_member") or {}
        return transition(old, new)
    return Filter(predicate, MEMBER_KINDS)


def new_chat_members() -> Filter:
    return member_status_change("join")


def left_chat_member() -> Filter:
    return member_status_change("leave")


def kicked_chat_member() -> Filter:
    return member_status_change("kick")


def promoted_chat_member() -> Filter:
    return member_status_change("promote")


def demoted_chat_member() -> Filter:
    return member_status_change("demote")


# ── Structural primitive ─────────────────────────────────────────────────────


def path_equals(pairs: Sequence[tuple[str, Any]]) -> Filter:
    """Every dotted path in *pairs* resolves to its expected value.

    ``path_equals([("message.chat.id", 42), ("message.from.is_bot", False)])``
    """
    criteria = tuple((path, expected) for path, expected in pairs)

    def predicate(update: dict) -> bool:
        for path, expected in criteria:
            found, value = get_path(update, path)
            if not found or value != expected:
                return False
        return True
    return Filter(predicate)


# ── Combinators ──────────────────────────────────────────────────────────────


def and_(operands: Iterable[Filter]) -> Filter:
    """All operands pass, checked in order, stopping at the first failure.

    An empty list always passes.
    """
    items = tuple(operands)

    def predicate(update: dict) -> bool:
        return all(f(update) for f in items)
    return Filter(predicate, _merge_events(items))


def or_(operands: Iterable[Filter]) -> Filter:
    """Any operand passes, checked in order, stopping at the first success.

    An empty list never passes.
    """
    items = tuple(operands)

    def predicate(update: dict) -> bool:
        return any(f(update) for f in items)
    return Filter(predicate, _merge_events(items))


def not_(operand: Filter) -> Filter:
    """Negation; keeps the operand's kind tag."""
    def predicate(update: dict) -> bool:
        return not operand(update)
    return Filter(predicate, operand.compatible_events)


def custom(fn: Predicate) -> Filter:
    """Wrap an arbitrary predicate; usable with any kind."""
    return Filter(fn)


def custom_with_events(fn: Predicate, kinds: Iterable[str]) -> Filter:
    """Wrap an arbitrary predicate and declare the kinds it applies to."""
    return Filter(fn, frozenset(kinds))
