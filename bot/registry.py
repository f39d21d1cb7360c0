"""Handler registry — ordered (handler, filter) entries per update kind.

Design:
- ``Handler`` is a :class:`Protocol`: any callable taking a context and
  returning ``None``, a value, or an awaitable.
- ``HandlerEntry`` is a frozen record pairing a handler with its optional
  :class:`~core.filters.Filter`.
- ``HandlerRegistry`` keeps one ordered list per kind.  Insertion order is
  invocation order.  Entries are never removed.

Unlike a process-wide singleton, every dispatcher owns its own registry, so
two bots in one process never see each other's handlers.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from core.filters import Filter
from core.logger import EdgegramLogger

logger = EdgegramLogger.get_logger()


class IncompatibleFilterError(ValueError):
    """A filter was attached to a kind it declares it can never match."""

    def __init__(self, kind: str, compatible_events: frozenset[str]) -> None:
        self.kind = kind
        self.compatible_events = compatible_events
        super().__init__(
            f"Filter is compatible with {sorted(compatible_events)}, not with {kind!r}"
        )


# ── Handler protocol ─────────────────────────────────────────────────────────

@runtime_checkable
class Handler(Protocol):
    """Anything called with the per-update context."""
    def __call__(self, ctx: Any) -> Union[Awaitable[Any], Any]: ...  # noqa: E704


# ── Registry entry ───────────────────────────────────────────────────────────

@dataclasses.dataclass(frozen=True, slots=True)
class HandlerEntry:
    """One registration: run *handler* when *filter* (if any) passes."""
    handler: Handler
    filter: Filter | None = None

    @property
    def name(self) -> str:
        """Readable handler name for logs."""
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)


# ── Registry ─────────────────────────────────────────────────────────────────

class HandlerRegistry:
    """Ordered ``kind -> [HandlerEntry]`` mapping.

    Usage::

        registry = HandlerRegistry()

        @registry.on("message", filters.command("ping"))
        async def on_ping(ctx): ...

        for entry in registry.entries("message"):
            ...
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[HandlerEntry]] = {}

    def __len__(self) -> int:
        return sum(len(items) for items in self._entries.values())

    # ── registration ─────────────────────────────────────────────────────

    def register(self, kind: str, handler: Handler, flt: Filter | None = None) -> HandlerEntry:
        """Append *handler* (guarded by *flt*) to the list for *kind*.

        Raises:
            ValueError: If *kind* is empty or *handler* is not callable.
            IncompatibleFilterError: If *flt* declares kinds that exclude *kind*.
        """
        if not isinstance(kind, str) or not kind:
            raise ValueError(f"Update kind must be a non-empty string, got {kind!r}")
        if not callable(handler):
            raise ValueError(f"Handler for {kind!r} is not callable: {handler!r}")
        if flt is not None and flt.compatible_events is not None and kind not in flt.compatible_events:
            raise IncompatibleFilterError(kind, flt.compatible_events)

        entry = HandlerEntry(handler=handler, filter=flt)
        self._entries.setdefault(kind, []).append(entry)
        logger.debug(
            "Handler registered",
            extra={"kind": kind, "handler": entry.name, "position": len(self._entries[kind]) - 1},
        )
        return entry

    def on(self, kind: str, flt: Filter | None = None) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`; returns the handler unchanged."""
        def decorator(func: Handler) -> Handler:
            self.register(kind, func, flt)
            return func
        return decorator

    # ── lookup helpers ───────────────────────────────────────────────────

    def entries(self, kind: str) -> tuple[HandlerEntry, ...]:
        """Return the entries for *kind* in registration order (may be empty)."""
        return tuple(self._entries.get(kind, ()))

    def kinds(self) -> list[str]:
        """Kinds with at least one handler, in first-registration order."""
        return list(self._entries)
