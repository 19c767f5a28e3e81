"""Webhook domain primitives."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from integration_service.domain.events import EventType

ANY_EVENT = EventType.ANY.value


class _WebhookModel(BaseModel):
    # Accept both ``timeoutMillis`` and ``timeout_millis`` in configuration.
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WebhookHeader(_WebhookModel):
    name: str
    value: str


class WebhookCall(_WebhookModel):
    url: AnyHttpUrl
    headers: tuple[WebhookHeader, ...] = ()
    timeout_millis: int = Field(default=5000, gt=0)
    ignore_certificate_errors: bool = False


class WebhookRetry(_WebhookModel):
    max_attempts: int = Field(default=1, ge=1)
    max_delay_millis: int = Field(default=30000, ge=0)


class Webhook(_WebhookModel):
    on: tuple[str, ...] = Field(min_length=1)
    call: WebhookCall
    retry: WebhookRetry = Field(default_factory=WebhookRetry)

    @field_validator("on", mode="before")
    @classmethod
    def _normalize_matchers(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            matchers = []
            for item in value:
                if isinstance(item, EventType):
                    item = item.value
                if not isinstance(item, str) or not item.strip():
                    raise ValueError("event matchers must be non-empty strings")
                matchers.append(item.strip())
            return tuple(dict.fromkeys(matchers))
        return value


_WEBHOOKS_ADAPTER = TypeAdapter(dict[str, Webhook])


@dataclass(frozen=True)
class WebhookSnapshot:
    """Read-only view of every configured webhook, keyed by unique name."""

    webhooks: Mapping[str, Webhook] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "WebhookSnapshot":
        """Validate raw configuration data (as read from YAML/JSON/env)."""
        parsed = _WEBHOOKS_ADAPTER.validate_python(dict(raw or {}))
        for name in parsed:
            if not name.strip():
                raise ValueError("webhook names must not be empty")
        return cls(webhooks=MappingProxyType(parsed))

    def __iter__(self) -> Iterator[str]:
        return iter(self.webhooks)

    def __len__(self) -> int:
        return len(self.webhooks)

    def items(self):
        return self.webhooks.items()
