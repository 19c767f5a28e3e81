"""Tests for the in-process event bus."""
from __future__ import annotations

import asyncio

import pytest
from structlog.testing import capture_logs

from integration_service.domain.events import Event
from integration_service.events.bus import EventBus


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    bus = EventBus()
    seen: list[tuple[str, str]] = []

    async def first(event: Event) -> None:
        seen.append(("first", event.type))

    async def second(event: Event) -> None:
        seen.append(("second", event.type))

    bus.subscribe("first", first)
    bus.subscribe("second", second)
    bus.publish(Event(type="Noop"))
    await bus.wait_idle()

    assert sorted(seen) == [("first", "Noop"), ("second", "Noop")]


@pytest.mark.asyncio
async def test_publish_does_not_wait_for_handlers():
    bus = EventBus()
    gate = asyncio.Event()
    finished = False

    async def slow(event: Event) -> None:
        nonlocal finished
        await gate.wait()
        finished = True

    bus.subscribe("slow", slow)
    bus.publish(Event(type="Noop"))

    assert finished is False
    gate.set()
    await bus.wait_idle()
    assert finished is True


@pytest.mark.asyncio
async def test_resubscribing_replaces_handler():
    bus = EventBus()
    calls: list[str] = []

    async def old(event: Event) -> None:
        calls.append("old")

    async def new(event: Event) -> None:
        calls.append("new")

    bus.subscribe("svc", old)
    bus.subscribe("svc", new)
    bus.publish(Event(type="Noop"))
    await bus.wait_idle()

    assert calls == ["new"]


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_isolated():
    bus = EventBus()
    calls: list[str] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("boom")

    async def healthy(event: Event) -> None:
        calls.append(event.type)

    bus.subscribe("broken", broken)
    bus.subscribe("healthy", healthy)

    with capture_logs() as logs:
        bus.publish(Event(type="Noop"))
        await bus.wait_idle()

    assert calls == ["Noop"]
    assert any(log["event"] == "event handler failed" and log["subscriber"] == "broken" for log in logs)


@pytest.mark.asyncio
async def test_unsubscribe_and_close():
    bus = EventBus()

    async def handler(event: Event) -> None:
        await asyncio.sleep(10)

    bus.subscribe("a", handler)
    bus.subscribe("b", handler)
    bus.unsubscribe("a")
    assert bus.subscribers == ["b"]

    bus.publish(Event(type="Noop"))
    await bus.close()

    assert bus.subscribers == []
