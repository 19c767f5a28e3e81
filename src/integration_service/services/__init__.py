"""Domain services exports."""

from integration_service.services.delivery import DeliveryExecutor, DeliveryResult
from integration_service.services.files import FileService
from integration_service.services.payload import encode_event
from integration_service.services.retry import exponential_backoff, retry_async

__all__ = [
    "DeliveryExecutor",
    "DeliveryResult",
    "FileService",
    "encode_event",
    "exponential_backoff",
    "retry_async",
]
