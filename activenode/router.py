# -*- coding: utf-8 -*-
"""
Command routing.

Behavior (case-insensitive substring match, checked in this order):
- `active_node` or `!an` -> status: poll every region, reply with colour + build.
- `help`                 -> usage text.
- anything else          -> hint to ask for help.

Inbound Slack events are first reduced to a closed set of kinds
(mention / other) and dispatched through an explicit handler table.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, Mapping, Set, Tuple

from activenode.aggregator import RegionAggregator
from activenode.config import DEFAULT_RELEASES_URL
from activenode.errors import CommandCancelled
from activenode.formatter import format_reply
from activenode.models import AggregateReport, EventKind, InboundEvent, Intent, ReplyPayload


log = logging.getLogger(__name__)

STATUS_KEYWORDS = ("active_node", "!an")
HELP_KEYWORD = "help"


def detect_intent(command_text: str) -> Intent:
    text = (command_text or "").lower()
    if any(k in text for k in STATUS_KEYWORDS):
        return Intent.STATUS
    if HELP_KEYWORD in text:
        return Intent.HELP
    return Intent.FALLBACK


class CommandRouter:
    """
    Stateless per command. Status commands run their aggregation on a fresh
    event loop in the calling (listener) thread; `shutdown()` may be called
    from any thread and cancels every aggregation still running.
    """

    def __init__(
        self,
        aggregator: RegionAggregator,
        releases_url: str = DEFAULT_RELEASES_URL,
        app_brand: str = "ActiveNode",
    ) -> None:
        self._aggregator = aggregator
        self._releases_url = releases_url
        self._app_brand = app_brand
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._running: Set[Tuple[asyncio.AbstractEventLoop, "asyncio.Task[Any]"]] = set()

    @property
    def aggregator(self) -> RegionAggregator:
        return self._aggregator

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def shutdown(self) -> None:
        self._closed.set()
        with self._lock:
            running = list(self._running)
        if running:
            log.info("Cancelling %d in-flight aggregation(s)", len(running))
        for loop, task in running:
            loop.call_soon_threadsafe(task.cancel)

    def route(self, command_text: str, invoker_name: str) -> ReplyPayload:
        intent = detect_intent(command_text)
        log.info("Routing %r from %s -> %s", command_text, invoker_name, intent.value)

        report = None
        if intent is Intent.STATUS:
            report = self._run_aggregation()

        text = format_reply(
            intent,
            invoker_name,
            self._aggregator.regions,
            report=report,
            releases_url=self._releases_url,
            app_brand=self._app_brand,
        )
        return ReplyPayload(intent=intent, text=text, report=report)

    def _run_aggregation(self) -> AggregateReport:
        if self._closed.is_set():
            raise CommandCancelled("bot is shutting down")
        try:
            return asyncio.run(self._aggregate_until_shutdown())
        except asyncio.CancelledError as e:
            raise CommandCancelled("aggregation cancelled by shutdown") from e

    async def _aggregate_until_shutdown(self) -> AggregateReport:
        entry = (asyncio.get_running_loop(), asyncio.current_task())
        with self._lock:
            if self._closed.is_set():
                raise asyncio.CancelledError()
            self._running.add(entry)
        try:
            return await self._aggregator.aggregate()
        finally:
            with self._lock:
                self._running.discard(entry)


# ---------------- Inbound events ----------------
def parse_event(event: Mapping[str, Any]) -> InboundEvent:
    event_type = str(event.get("type") or "")
    kind = EventKind.MENTION if event_type == "app_mention" else EventKind.OTHER
    return InboundEvent(
        kind=kind,
        event_type=event_type,
        user=str(event.get("user") or ""),
        text=str(event.get("text") or ""),
        channel=str(event.get("channel") or ""),
    )


# handler(event, client)
EventHandler = Callable[[InboundEvent, Any], Any]


class EventDispatcher:
    """Maps every EventKind to exactly one handler."""

    def __init__(self, handlers: Mapping[EventKind, EventHandler]) -> None:
        missing = [k.value for k in EventKind if k not in handlers]
        if missing:
            raise ValueError(f"no handler for event kinds: {', '.join(missing)}")
        self._handlers: Dict[EventKind, EventHandler] = dict(handlers)

    def dispatch(self, event: InboundEvent, client: Any = None) -> None:
        self._handlers[event.kind](event, client)


def ignore_event(event: InboundEvent, client: Any = None) -> None:
    log.debug("Ignoring %s event", event.event_type or "untyped")
