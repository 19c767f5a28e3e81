"""In-process event bus with named subscribers."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog

from integration_service.domain.events import Event

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """Fan-out pub/sub: each published event is handed to every subscriber.

    Handlers run as their own asyncio tasks, so ``publish`` never waits on
    them and a failing handler does not affect the others. Subscribing twice
    with the same ``subscriber_id`` replaces the earlier handler.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, EventHandler] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def subscribers(self) -> list[str]:
        return list(self._subscribers)

    def subscribe(self, subscriber_id: str, handler: EventHandler) -> None:
        replaced = subscriber_id in self._subscribers
        self._subscribers[subscriber_id] = handler
        logger.debug("event bus subscriber registered", subscriber=subscriber_id, replaced=replaced)

    def unsubscribe(self, subscriber_id: str) -> None:
        self._subscribers.pop(subscriber_id, None)

    def publish(self, event: Event) -> None:
        """Schedule every handler for ``event``. Must run inside an event loop."""
        logger.debug("publishing event", event_type=event.type, event_id=str(event.id))
        for subscriber_id, handler in list(self._subscribers.items()):
            task = asyncio.create_task(
                self._invoke(subscriber_id, handler, event),
                name=f"event:{subscriber_id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _invoke(self, subscriber_id: str, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "event handler failed",
                subscriber=subscriber_id,
                event_type=event.type,
                event_id=str(event.id),
            )

    async def wait_idle(self) -> None:
        """Wait until every handler scheduled so far has returned."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._subscribers.clear()
