"""aiohttp application entrypoint."""
from __future__ import annotations

from aiohttp import web
from aiohttp_cors import ResourceOptions, setup as cors_setup

from integration_service.api.router import setup_routes
from integration_service.events.bus import EventBus
from integration_service.logging_config import configure_logging
from integration_service.middleware.trace import create_trace_middleware
from integration_service.otel import setup_otel, shutdown_otel
from integration_service.services.dependencies import (
    CONFIG_SOURCE_KEY,
    EVENT_BUS_KEY,
    FILE_SERVICE_KEY,
    SETTINGS_KEY,
    build_config_source,
    get_event_bus,
)
from integration_service.services.files import FileService
from integration_service.settings import Settings, settings as default_settings
from integration_service.webhooks_dispatcher import start_webhook_dispatcher, stop_webhook_dispatcher

_ALLOWED_HEADERS = (
    "Accept",
    "Content-Type",
    "Authorization",
    "X-Trace-Id",
    "X-Request-Id",
)

_EXPOSED_HEADERS = (
    "X-Trace-Id",
    "X-Request-Id",
)


async def close_event_bus(app: web.Application) -> None:
    await get_event_bus(app).close()


def create_app(settings: Settings | None = None) -> web.Application:
    settings = settings or default_settings
    app = web.Application()

    app.middlewares.append(create_trace_middleware(settings.app_name))

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods=("GET", "POST", "OPTIONS"),
            )
            for origin in settings.cors_allowed_origins
        },
    )

    app[SETTINGS_KEY] = settings
    app[EVENT_BUS_KEY] = EventBus()
    app[CONFIG_SOURCE_KEY] = build_config_source(settings)
    app[FILE_SERVICE_KEY] = FileService(settings.allowed_directories)

    async def healthcheck(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": settings.app_name, "env": settings.env})

    app.router.add_get("/health", healthcheck)
    setup_routes(app)

    app.on_startup.append(start_webhook_dispatcher)
    # the bus goes first so no pending handler can start a delivery on a closed session
    app.on_cleanup.append(close_event_bus)
    app.on_cleanup.append(stop_webhook_dispatcher)
    app.on_cleanup.append(shutdown_otel)

    setup_otel(app, settings)

    for route in list(app.router.routes()):
        cors.add(route)

    return app


def main() -> None:
    configure_logging(default_settings.log_level.upper())
    web.run_app(create_app(), host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    main()
