"""Conversation notifications.

The orchestrator publishes one typed event per step of an exchange:
RequestStarted when the task begins, then either TurnAppended or
RequestFailed. Front ends subscribe by event class; subscribing to
ConversationEvent receives all of them.

Delivery is direct. publish() awaits each matching handler in
subscription order inside the reply task, so by the time the task
resolves every subscriber has seen its outcome. A handler that raises
is logged and skipped; the remaining handlers still run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Awaitable, Callable, TypeVar

from colloquy.schemas import Span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationEvent:
    session: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC), kw_only=True)


@dataclass(frozen=True)
class RequestStarted(ConversationEvent):
    message_count: int


@dataclass(frozen=True)
class TurnAppended(ConversationEvent):
    content: str
    span: Span | None  # None for an empty reply


@dataclass(frozen=True)
class RequestFailed(ConversationEvent):
    error: str
    status_code: int | None = None


E = TypeVar("E", bound=ConversationEvent)
Handler = Callable[[E], Awaitable[None]]


class EventBus:
    """Routes conversation events to async handlers registered per class."""

    def __init__(self) -> None:
        self._handlers: dict[type[ConversationEvent], list[Handler]] = defaultdict(list)

    def on(self, event_type: type[E], handler: Handler[E]) -> None:
        """Subscribe handler to event_type and its subclasses."""
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def off(self, event_type: type[E], handler: Handler[E]) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def handlers_for(self, event: ConversationEvent) -> list[Handler]:
        """Handlers for event, most specific class first."""
        found: list[Handler] = []
        for cls in type(event).__mro__:
            for handler in self._handlers.get(cls, ()):
                if handler not in found:
                    found.append(handler)
        return found

    async def publish(self, event: ConversationEvent) -> int:
        """Deliver event to every matching handler. Returns how many succeeded."""
        delivered = 0
        for handler in self.handlers_for(event):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "%s handler %s failed for session %r",
                    type(event).__name__,
                    getattr(handler, "__qualname__", handler),
                    event.session,
                )
                continue
            delivered += 1
        if not delivered:
            logger.debug("No handler took %s for %r", type(event).__name__, event.session)
        return delivered
