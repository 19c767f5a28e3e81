"""Common exceptions for domain and service layers."""
from __future__ import annotations


class IntegrationServiceError(Exception):
    """Base error for service layer."""


class WebhookConfigError(IntegrationServiceError):
    """Raised when webhook definitions cannot be parsed or validated."""


class WebhookDeliveryError(IntegrationServiceError):
    """Raised when a webhook endpoint answers with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        message = f"HTTP {status}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class RetryExhaustedError(IntegrationServiceError):
    """Raised when every allowed attempt of an operation has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempt(s): {last_error}")


class InvalidDirectoryError(IntegrationServiceError):
    """Raised when a directory is not rooted in any of the allowed directories."""
