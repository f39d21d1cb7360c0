"""Core dispatch primitives — filter algebra, update resolution, and logging.

This package is transport-agnostic. It must NEVER import from ``bot/`` or ``sdk/``.
"""

from core import filters
from core.filters import Filter
from core.logger import EdgegramLogger
from core.resolve import get_chat, get_user, parse_command, update_kinds

__all__ = [
    "filters",
    "Filter",
    "EdgegramLogger",
    "get_chat",
    "get_user",
    "parse_command",
    "update_kinds",
]
