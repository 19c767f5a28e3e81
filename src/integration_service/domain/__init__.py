"""Domain models exports."""

from integration_service.domain.events import Event, EventType
from integration_service.domain.webhooks import (
    ANY_EVENT,
    Webhook,
    WebhookCall,
    WebhookHeader,
    WebhookRetry,
    WebhookSnapshot,
)

__all__ = [
    "ANY_EVENT",
    "Event",
    "EventType",
    "Webhook",
    "WebhookCall",
    "WebhookHeader",
    "WebhookRetry",
    "WebhookSnapshot",
]
