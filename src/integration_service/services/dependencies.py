"""Accessors for the collaborators stored on the aiohttp application."""
from __future__ import annotations

from aiohttp import web

from integration_service.events.bus import EventBus
from integration_service.repositories.webhooks import (
    StaticWebhookSource,
    WebhookConfigSource,
    YamlWebhookSource,
)
from integration_service.services.files import FileService
from integration_service.settings import Settings

SETTINGS_KEY = "settings"
EVENT_BUS_KEY = "event_bus"
CONFIG_SOURCE_KEY = "webhook_config_source"
FILE_SERVICE_KEY = "file_service"


def build_config_source(settings: Settings) -> WebhookConfigSource:
    if settings.webhooks_config_path is not None:
        return YamlWebhookSource(settings.webhooks_config_path)
    return StaticWebhookSource(settings.webhooks)


def get_settings(app: web.Application) -> Settings:
    return app[SETTINGS_KEY]


def get_event_bus(app: web.Application) -> EventBus:
    return app[EVENT_BUS_KEY]


def get_config_source(app: web.Application) -> WebhookConfigSource:
    return app[CONFIG_SOURCE_KEY]


def get_file_service(request: web.Request) -> FileService:
    return request.app[FILE_SERVICE_KEY]
