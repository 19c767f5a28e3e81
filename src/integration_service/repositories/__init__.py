"""Repository package exports."""

from integration_service.repositories.webhooks import (
    StaticWebhookSource,
    WebhookConfigSource,
    YamlWebhookSource,
)

__all__ = [
    "StaticWebhookSource",
    "WebhookConfigSource",
    "YamlWebhookSource",
]
