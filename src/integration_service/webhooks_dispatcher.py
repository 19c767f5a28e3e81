"""Webhook dispatcher: matches events to webhooks and fans out deliveries."""
from __future__ import annotations

import asyncio
from typing import Protocol

import structlog
from aiohttp import ClientSession, web

from integration_service.domain.events import Event
from integration_service.domain.webhooks import ANY_EVENT, Webhook
from integration_service.events.bus import EventHandler
from integration_service.repositories.webhooks import WebhookConfigSource
from integration_service.services.delivery import DeliveryExecutor, DeliveryResult
from integration_service.services.dependencies import get_config_source, get_event_bus, get_settings

logger = structlog.get_logger(__name__)

SUBSCRIBER_ID = "WebhookDispatcher"

_WEBHOOK_SESSION_KEY = "webhook_http_session"
_WEBHOOK_DISPATCHER_KEY = "webhook_dispatcher"

_ANY = ANY_EVENT.casefold()


class EventSubscriptions(Protocol):
    def subscribe(self, subscriber_id: str, handler: EventHandler) -> None: ...


def webhook_matches(webhook: Webhook, event_type: str) -> bool:
    """True when a matcher names ``event_type`` (any case) or is ``Any``."""
    wanted = event_type.casefold()
    return any(matcher.casefold() in (wanted, _ANY) for matcher in webhook.on)


class WebhookDispatcher:
    """Turns each received event into independent webhook deliveries.

    Webhook definitions are read from ``config_source`` once per event, so
    edits apply from the next event on. Deliveries run as separate tasks;
    the dispatcher never waits for them and never lets their failures
    escape.
    """

    def __init__(
        self,
        bus: EventSubscriptions,
        config_source: WebhookConfigSource,
        executor: DeliveryExecutor,
        *,
        max_concurrency: int | None = None,
    ):
        self._bus = bus
        self._config_source = config_source
        self._executor = executor
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._tasks: set[asyncio.Task[DeliveryResult | None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def subscribe(self) -> None:
        self._bus.subscribe(SUBSCRIBER_ID, self.handle_event)
        logger.debug("webhook dispatcher subscribed", subscriber=SUBSCRIBER_ID)

    async def handle_event(self, event: Event) -> None:
        self.dispatch(event)

    def dispatch(self, event: Event) -> list[asyncio.Task[DeliveryResult | None]]:
        """Start one delivery per matching webhook and return the spawned tasks."""
        log = logger.bind(event_type=event.type, event_id=str(event.id))
        try:
            snapshot = self._config_source.snapshot()
        except Exception:
            log.exception("failed to read webhook configuration")
            return []

        log.debug("handling event", webhooks=len(snapshot))
        spawned: list[asyncio.Task[DeliveryResult | None]] = []
        for name, webhook in snapshot.items():
            try:
                if not webhook_matches(webhook, event.type):
                    continue
                spawned.append(self._spawn(name, event, webhook))
            except Exception:
                log.exception("failed to start webhook delivery", webhook=name)
        return spawned

    def _spawn(self, name: str, event: Event, webhook: Webhook) -> asyncio.Task[DeliveryResult | None]:
        task = asyncio.create_task(self._run(name, event, webhook), name=f"webhook:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, event: Event, webhook: Webhook) -> DeliveryResult | None:
        try:
            if self._semaphore is None:
                return await self._executor.deliver(name, event, webhook)
            async with self._semaphore:
                return await self._executor.deliver(name, event, webhook)
        except Exception:
            logger.exception(
                "webhook delivery crashed",
                webhook=name,
                event_type=event.type,
                event_id=str(event.id),
            )
            return None

    async def wait_idle(self) -> None:
        """Wait for every delivery started so far (including ones started meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Abandon in-flight deliveries."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("webhook deliveries abandoned on shutdown", count=len(tasks))


async def start_webhook_dispatcher(app: web.Application) -> None:
    settings = get_settings(app)
    session = ClientSession()
    app[_WEBHOOK_SESSION_KEY] = session
    dispatcher = WebhookDispatcher(
        get_event_bus(app),
        get_config_source(app),
        DeliveryExecutor(session),
        max_concurrency=settings.webhook_dispatch_max_concurrency,
    )
    dispatcher.subscribe()
    app[_WEBHOOK_DISPATCHER_KEY] = dispatcher


async def stop_webhook_dispatcher(app: web.Application) -> None:
    dispatcher: WebhookDispatcher | None = app.get(_WEBHOOK_DISPATCHER_KEY)
    if dispatcher is not None:
        await dispatcher.close()
    session: ClientSession | None = app.get(_WEBHOOK_SESSION_KEY)
    if session is not None:
        await session.close()
