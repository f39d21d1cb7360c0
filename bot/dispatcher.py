"""Update dispatcher and long-polling loop.

:class:`Dispatcher` classifies each incoming update, builds one context for
it, and runs the matching handlers from its own
:class:`~bot.registry.HandlerRegistry` strictly one after another: each
handler, including any awaitable it returns, completes before the next one
starts.  A failing handler is logged and skipped over; ``dispatch`` itself
never raises because of one.

Registration is expected to finish before the first ``dispatch``; there is
no locking around the registry.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional

from core import filters
from core.filters import Filter
from core.logger import EdgegramLogger
from core.resolve import update_kinds
from sdk.client import BotClient
from sdk.models import Update
from bot.context import BaseContext, build_context
from bot.registry import Handler, HandlerEntry, HandlerRegistry, IncompatibleFilterError

logger = EdgegramLogger.get_logger()


class Dispatcher:
    """Routes updates to registered handlers.

    Usage::

        dispatcher = Dispatcher(BotClient(token))

        @dispatcher.command("ping")
        async def on_ping(ctx):
            await ctx.reply("pong")

        await dispatcher.dispatch(update)
    """

    def __init__(self, client: BotClient) -> None:
        self.client = client
        self.registry = HandlerRegistry()

    # ── registration ─────────────────────────────────────────────────────

    def register(self, kind: str, handler: Handler, flt: Filter | None = None) -> HandlerEntry:
        """Run *handler* for every *kind* update that passes *flt*."""
        return self.registry.register(kind, handler, flt)

    def register_command(self, name: str, handler: Handler, flt: Filter | None = None) -> HandlerEntry:
        """Run *handler* for ``/name`` messages that also pass *flt*.

        Raises:
            IncompatibleFilterError: If *flt* cannot apply to messages.
        """
        combined = filters.command(name)
        if flt is not None:
            if flt.compatible_events is not None and "message" not in flt.compatible_events:
                raise IncompatibleFilterError("message", flt.compatible_events)
            combined = filters.and_([combined, flt])
        # Restrict the tag to messages even if the extra filter was broader.
        combined = Filter(combined.predicate, frozenset({"message"}))
        return self.register("message", handler, combined)

    def on(self, kind: str, flt: Filter | None = None) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`."""
        return self.registry.on(kind, flt)

    def command(self, name: str, flt: Filter | None = None) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register_command`."""
        def decorator(func: Handler) -> Handler:
            self.register_command(name, func, flt)
            return func
        return decorator

    # ── dispatch ─────────────────────────────────────────────────────────

    async def dispatch(self, update: dict | Update) -> Optional[BaseContext]:
        """Run every matching handler for *update*, in registration order.

        Every populated kind of the update is visited, in the order the
        fields appear.  Filters see the raw update dict; handlers receive
        the single context built for this update.

        An :class:`~sdk.models.Update` is dumped with only the fields it was
        built from, so filters see the same dict the raw payload would give.

        Returns the context that was built, or ``None`` when *update* is not
        an update at all.
        """
        if isinstance(update, Update):
            update = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        if not isinstance(update, dict):
            logger.warning("Ignoring non-dict update", extra={"update_type": type(update).__name__})
            return None

        update_id = update.get("update_id")
        kinds = update_kinds(update)
        ctx = build_context(self.client, update)
        logger.debug(
            "Dispatching update",
            extra={"update_id": update_id, "kinds": kinds, "context": type(ctx).__name__},
        )

        handled = 0
        for kind in kinds:
            for entry in self.registry.entries(kind):
                if await self._run_entry(entry, kind, update, ctx):
                    handled += 1

        if not handled:
            logger.debug("No handler matched", extra={"update_id": update_id, "kinds": kinds})
        return ctx

    process_update = dispatch

    async def _run_entry(self, entry: HandlerEntry, kind: str, update: dict, ctx: BaseContext) -> bool:
        """Run one entry; returns whether its handler was invoked.

        Filter and handler failures are logged here and never propagate.
        """
        try:
            if entry.filter is not None and not entry.filter(update):
                return False
        except Exception:
            logger.exception(
                "Filter failed, skipping handler",
                extra={"update_id": update.get("update_id"), "kind": kind, "handler": entry.name},
            )
            return False

        try:
            result = entry.handler(ctx)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Handler failed",
                extra={"update_id": update.get("update_id"), "kind": kind, "handler": entry.name},
            )
        return True


async def run_polling(
    dispatcher: Dispatcher,
    *,
    poll_timeout: int = 30,
    allowed_updates: Optional[list[str]] = None,
    retry_delay: float = 5,
    max_iterations: Optional[int] = None,
) -> None:
    """Long-poll ``getUpdates`` and dispatch each update in arrival order.

    The offset advances past every update handed to the dispatcher.  A
    failed poll is logged and retried after *retry_delay* seconds.  Runs
    until cancelled, or for *max_iterations* polls when given.
    """
    offset: Optional[int] = None
    iterations = 0

    logger.info("Polling for updates", extra={"poll_timeout": poll_timeout, "allowed_updates": allowed_updates})
    while max_iterations is None or iterations < max_iterations:
        iterations += 1
        try:
            updates: list[dict[str, Any]] = await dispatcher.client.get_updates(
                offset=offset, timeout=poll_timeout, allowed_updates=allowed_updates,
            )
        except Exception as exc:
            logger.warning(
                "getUpdates failed, retrying",
                extra={"api_method": "getUpdates", "error": str(exc), "retry_delay": retry_delay},
            )
            await asyncio.sleep(retry_delay)
            continue

        if updates:
            logger.debug("Received updates", extra={"count": len(updates)})
        for update in updates:
            await dispatcher.dispatch(update)
            offset = update["update_id"] + 1
