"""Webhook delivery: one HTTP POST sequence (with retries) per event and webhook."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog
from aiohttp import ClientSession, ClientTimeout
from multidict import CIMultiDict
from opentelemetry.trace import Tracer

from integration_service.core.exceptions import RetryExhaustedError, WebhookDeliveryError
from integration_service.domain.events import Event
from integration_service.domain.webhooks import Webhook, WebhookCall
from integration_service.otel import delivery_span, get_tracer, record_delivery
from integration_service.services.payload import encode_event
from integration_service.services.retry import BackoffFn, exponential_backoff, retry_async

logger = structlog.get_logger(__name__)

_CONTENT_TYPE = "application/json"
_MAX_ERROR_BODY = 2000


@dataclass(frozen=True)
class DeliveryResult:
    webhook: str
    event_type: str
    succeeded: bool
    attempts: int
    status_code: int | None = None
    elapsed_ms: float = 0.0
    error: str | None = None


def build_headers(call: WebhookCall) -> CIMultiDict[str]:
    """Default transport headers plus the configured ones, unvalidated.

    A configured ``Content-Type`` replaces the default; every other header is
    added alongside whatever is already there.
    """
    headers: CIMultiDict[str] = CIMultiDict({"Content-Type": _CONTENT_TYPE})
    for header in call.headers:
        if header.name.lower() == "content-type":
            headers[header.name] = header.value
        else:
            headers.add(header.name, header.value)
    return headers


class DeliveryExecutor:
    """Posts encoded events to webhook endpoints, retrying failed attempts.

    Outcomes are logged and returned as :class:`DeliveryResult`; nothing is
    raised to the caller.
    """

    def __init__(
        self,
        session: ClientSession,
        *,
        backoff: BackoffFn = exponential_backoff,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        tracer: Tracer | None = None,
    ):
        self._session = session
        self._backoff = backoff
        self._sleep = sleep
        self._tracer = tracer or get_tracer(__name__)

    async def _post(self, call: WebhookCall, body: bytes, headers: CIMultiDict[str]) -> int:
        timeout = ClientTimeout(total=call.timeout_millis / 1000)
        # certificate validation is skipped for this request only
        ssl = False if call.ignore_certificate_errors else True
        async with self._session.post(
            str(call.url),
            data=body,
            headers=headers,
            timeout=timeout,
            ssl=ssl,
        ) as resp:
            if 200 <= resp.status < 300:
                return resp.status
            text = await resp.text(errors="replace")
            raise WebhookDeliveryError(resp.status, text[:_MAX_ERROR_BODY])

    async def deliver(self, name: str, event: Event, webhook: Webhook) -> DeliveryResult:
        call = webhook.call
        policy = webhook.retry
        log = logger.bind(webhook=name, event_type=event.type, event_id=str(event.id))

        body = encode_event(event).encode("utf-8")
        headers = build_headers(call)
        attempts = 0
        status_code: int | None = None

        async def attempt() -> None:
            nonlocal attempts, status_code
            attempts += 1
            status_code = await self._post(call, body, headers)

        def on_failure(attempt_number: int, exc: Exception) -> None:
            if policy.max_attempts > 1:
                log.warning(
                    "webhook attempt failed",
                    attempt=attempt_number,
                    max_attempts=policy.max_attempts,
                    error=_describe(exc),
                    error_type=type(exc).__name__,
                )

        log.debug("calling webhook", url=str(call.url))
        started = time.monotonic()
        with delivery_span(name, event.type, tracer=self._tracer) as span:
            try:
                await retry_async(
                    attempt,
                    max_attempts=policy.max_attempts,
                    max_delay_millis=policy.max_delay_millis,
                    on_failure=on_failure,
                    backoff=self._backoff,
                    sleep=self._sleep,
                )
            except RetryExhaustedError as exc:
                elapsed_ms = round((time.monotonic() - started) * 1000, 2)
                error = _describe(exc.last_error)
                record_delivery(span, attempts=attempts, status_code=_status_of(exc.last_error), error=error)
                log.warning(
                    "webhook delivery failed after exhausting retries",
                    attempts=attempts,
                    duration_ms=elapsed_ms,
                    error=error,
                    error_type=type(exc.last_error).__name__,
                )
                return DeliveryResult(
                    webhook=name,
                    event_type=event.type,
                    succeeded=False,
                    attempts=attempts,
                    status_code=_status_of(exc.last_error),
                    elapsed_ms=elapsed_ms,
                    error=error,
                )

            elapsed_ms = round((time.monotonic() - started) * 1000, 2)
            record_delivery(span, attempts=attempts, status_code=status_code)
            log.info(
                "webhook called successfully",
                attempts=attempts,
                duration_ms=elapsed_ms,
                status_code=status_code,
            )
            return DeliveryResult(
                webhook=name,
                event_type=event.type,
                succeeded=True,
                attempts=attempts,
                status_code=status_code,
                elapsed_ms=elapsed_ms,
            )


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "request timed out"
    return str(exc) or type(exc).__name__


def _status_of(exc: BaseException) -> int | None:
    if isinstance(exc, WebhookDeliveryError):
        return exc.status
    return None
