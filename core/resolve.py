"""Helpers that pull kinds, chats and users out of a raw Telegram update dict.

These work on the plain ``dict`` Telegram delivers, never on SDK models, so
filters and the dispatcher can share them without parsing the update.
"""

import re
from typing import Any

UPDATE_ID_FIELD = "update_id"

# Fields whose payload carries a ``chat`` object, in lookup order.
_CHAT_SOURCES: tuple[str, ...] = (
    "message",
    "edited_message",
    "callback_query",
    "chat_member",
    "my_chat_member",
)

# Fields whose payload carries a ``from`` user, in lookup order.
_USER_SOURCES: tuple[str, ...] = (
    "message",
    "edited_message",
    "callback_query",
    "chat_member",
    "my_chat_member",
    "inline_query",
    "chosen_inline_result",
)

CHAT_KINDS: frozenset[str] = frozenset(_CHAT_SOURCES)
USER_KINDS: frozenset[str] = frozenset(_USER_SOURCES)

_COMMAND_RE = re.compile(r"^/([^\s@]+)(?:@(\S+))?(?:\s+(.*))?$", re.DOTALL)


def update_kinds(update: dict) -> list[str]:
    """Return every populated top-level field except ``update_id``.

    Normally exactly one; malformed input may carry several and all of them
    are reported, in the order they appear in the dict.
    """
    return [
        key for key, value in update.items()
        if key != UPDATE_ID_FIELD and value
    ]


def get_chat(update: dict) -> dict | None:
    """Return the chat object the update refers to, or ``None``.

    For callback queries the chat comes from the message the button was
    attached to; inline-mode callbacks have no message and yield ``None``.
    """
    for field in _CHAT_SOURCES:
        payload = update.get(field)
        if not payload:
            continue
        if field == "callback_query":
            payload = payload.get("message") or {}
        chat = payload.get("chat")
        if chat:
            return chat
    return None


def get_user(update: dict) -> dict | None:
    """Return the ``from`` user of whichever populated field carries one."""
    for field in _USER_SOURCES:
        payload = update.get(field)
        if payload and payload.get("from"):
            return payload["from"]
    return None


def get_member_update(update: dict) -> dict | None:
    """Return the ``chat_member`` or ``my_chat_member`` payload, if any."""
    return update.get("chat_member") or update.get("my_chat_member") or None


def get_path(data: Any, path: str) -> tuple[bool, Any]:
    """Walk a dotted *path* through nested dicts.

    Returns ``(found, value)``; ``found`` is ``False`` as soon as a segment
    is missing or the current value is not a dict.
    """
    current = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return False, None
        current = current[part]
    return True, current


def parse_command(text: str) -> tuple[str, str | None, list[str]]:
    """Split ``/cmd@bot payload`` into ``(command, payload, args)``.

    Returns ``("", None, [])`` when *text* is not a command.
    """
    match = _COMMAND_RE.match(text or "")
    if not match:
        return "", None, []
    payload = match.group(3)
    args = payload.split() if payload else []
    return match.group(1), payload, args


def full_name(user: dict | None) -> str:
    """``first_name`` plus ``last_name`` when present."""
    if not user:
        return ""
    first = user.get("first_name") or ""
    last = user.get("last_name")
    return f"{first} {last}" if last else first


def display_name(user: dict | None) -> str:
    """Full name followed by ``(@username)`` when the user has one."""
    name = full_name(user)
    username = (user or {}).get("username")
    return f"{name} (@{username})" if username else name
