"""OpenTelemetry tracing for integration-service.

Export is enabled only when ``otel_exporter_endpoint`` is set; without it
every tracer is a no-op and the span helpers below cost nothing.

Each webhook delivery is one ``webhook.deliver`` span carrying the webhook
name, the event type, the number of attempts and the final status.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from aiohttp import web

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.aiohttp_server import AioHttpServerInstrumentor
from opentelemetry.trace import Span, Status, StatusCode

from integration_service.settings import Settings

logger = structlog.get_logger(__name__)

DELIVERY_SPAN = "webhook.deliver"

_provider: TracerProvider | None = None


def _traces_url(endpoint: str) -> str:
    base = endpoint.rstrip("/")
    return base if base.endswith("/v1/traces") else f"{base}/v1/traces"


def setup_otel(app: web.Application, settings: Settings) -> bool:
    """Install the OTLP exporter and request spans; returns whether tracing is on."""
    global _provider

    endpoint = settings.otel_exporter_endpoint
    if not endpoint:
        logger.info("otel_exporter_endpoint not set, webhook delivery spans are not exported")
        return False

    _provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.app_name}))
    _provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=_traces_url(str(endpoint)))))
    trace.set_tracer_provider(_provider)
    AioHttpServerInstrumentor().instrument(server=app)

    logger.info("OpenTelemetry tracing enabled", endpoint=_traces_url(str(endpoint)), service=settings.app_name)
    return True


async def shutdown_otel(_app: web.Application) -> None:
    """Flush spans of deliveries that finished before shutdown."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        logger.info("OpenTelemetry tracer provider shut down")
        _provider = None


def get_tracer(name: str = __name__) -> trace.Tracer:
    return trace.get_tracer(name)


@contextmanager
def delivery_span(
    webhook: str,
    event_type: str,
    *,
    tracer: trace.Tracer | None = None,
) -> Iterator[Span]:
    """Span around one delivery sequence (all attempts) of one event to one webhook."""
    tracer = tracer or get_tracer(__name__)
    with tracer.start_as_current_span(DELIVERY_SPAN) as span:
        span.set_attribute("webhook.name", webhook)
        span.set_attribute("webhook.event_type", event_type)
        yield span


def record_delivery(
    span: Span,
    *,
    attempts: int,
    status_code: int | None = None,
    error: str | None = None,
) -> None:
    span.set_attribute("webhook.attempts", attempts)
    if status_code is not None:
        span.set_attribute("http.status_code", status_code)
    if error is None:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, error))
