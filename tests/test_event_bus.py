"""Tests for EventBus -- typed events, per-class routing, handler isolation."""

import logging

from colloquy.events import (
    ConversationEvent,
    EventBus,
    RequestFailed,
    RequestStarted,
    TurnAppended,
)
from colloquy.schemas import Role, Span


class TestEventBus:
    async def test_handler_receives_typed_event(self):
        bus = EventBus()
        received: list[TurnAppended] = []

        async def handler(event: TurnAppended) -> None:
            received.append(event)

        bus.on(TurnAppended, handler)
        span = Span(Role.ASSISTANT, 10, 18)
        assert await bus.publish(TurnAppended("*Colloquy*", content="Hi there", span=span)) == 1

        assert len(received) == 1
        assert received[0].session == "*Colloquy*"
        assert received[0].content == "Hi there"
        assert received[0].span == span
        assert received[0].timestamp.tzinfo is not None

    async def test_routing_is_per_class(self):
        bus = EventBus()
        failed: list[RequestFailed] = []

        async def on_failed(event: RequestFailed) -> None:
            failed.append(event)

        bus.on(RequestFailed, on_failed)
        assert await bus.publish(RequestStarted("s", message_count=2)) == 0
        await bus.publish(RequestFailed("s", error="boom", status_code=503))

        assert [(e.error, e.status_code) for e in failed] == [("boom", 503)]

    async def test_base_class_subscription_sees_every_event(self):
        bus = EventBus()
        seen: list[str] = []

        async def everything(event: ConversationEvent) -> None:
            seen.append(type(event).__name__)

        bus.on(ConversationEvent, everything)
        await bus.publish(RequestStarted("s", message_count=1))
        await bus.publish(TurnAppended("s", content="", span=None))
        await bus.publish(RequestFailed("s", error="x"))

        assert seen == ["RequestStarted", "TurnAppended", "RequestFailed"]

    async def test_handlers_run_in_subscription_order(self):
        bus = EventBus()
        calls: list[str] = []

        async def first(event) -> None:
            calls.append("first")

        async def second(event) -> None:
            calls.append("second")

        async def generic(event) -> None:
            calls.append("generic")

        bus.on(ConversationEvent, generic)
        bus.on(RequestFailed, first)
        bus.on(RequestFailed, second)
        await bus.publish(RequestFailed("s", error="x"))

        # Most specific class first, then subscription order within a class.
        assert calls == ["first", "second", "generic"]

    async def test_failing_handler_does_not_block_others(self, caplog):
        bus = EventBus()
        received: list[ConversationEvent] = []

        async def broken(event) -> None:
            raise ValueError("boom")

        async def healthy(event) -> None:
            received.append(event)

        bus.on(RequestStarted, broken)
        bus.on(RequestStarted, healthy)
        with caplog.at_level(logging.ERROR, logger="colloquy.events"):
            delivered = await bus.publish(RequestStarted("s", message_count=1))

        assert delivered == 1
        assert len(received) == 1
        assert "RequestStarted handler" in caplog.text
        assert "failed for session 's'" in caplog.text

    async def test_subscribing_twice_delivers_once(self):
        bus = EventBus()
        calls: list[int] = []

        async def handler(event) -> None:
            calls.append(1)

        bus.on(TurnAppended, handler)
        bus.on(TurnAppended, handler)
        await bus.publish(TurnAppended("s", content="a", span=None))
        assert calls == [1]

    async def test_off_unsubscribes(self):
        bus = EventBus()
        calls: list[int] = []

        async def handler(event) -> None:
            calls.append(1)

        bus.on(TurnAppended, handler)
        bus.off(TurnAppended, handler)
        bus.off(RequestFailed, handler)  # never subscribed: no-op
        assert await bus.publish(TurnAppended("s", content="a", span=None)) == 0
        assert calls == []
