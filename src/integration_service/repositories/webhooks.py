"""Sources of webhook definitions, read fresh for every dispatched event."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Protocol

import structlog
import yaml
from pydantic import ValidationError

from integration_service.core.exceptions import WebhookConfigError
from integration_service.domain.webhooks import Webhook, WebhookSnapshot

logger = structlog.get_logger(__name__)


class WebhookConfigSource(Protocol):
    def snapshot(self) -> WebhookSnapshot:
        """Return the current, immutable set of webhook definitions."""
        ...


def parse_webhooks(raw: Mapping[str, Any] | None) -> WebhookSnapshot:
    try:
        return WebhookSnapshot.from_mapping(raw)
    except (ValidationError, ValueError, TypeError) as exc:
        raise WebhookConfigError(f"Invalid webhook configuration: {exc}") from exc


class StaticWebhookSource:
    """In-memory definitions; ``replace`` swaps the whole set at once."""

    def __init__(self, webhooks: Mapping[str, Webhook | Mapping[str, Any]] | WebhookSnapshot | None = None):
        self._snapshot = self._coerce(webhooks)

    @staticmethod
    def _coerce(webhooks) -> WebhookSnapshot:
        if isinstance(webhooks, WebhookSnapshot):
            return webhooks
        return parse_webhooks(webhooks)

    def snapshot(self) -> WebhookSnapshot:
        return self._snapshot

    def replace(self, webhooks: Mapping[str, Webhook | Mapping[str, Any]] | WebhookSnapshot | None) -> None:
        self._snapshot = self._coerce(webhooks)
        logger.info("webhook configuration replaced", webhooks=sorted(self._snapshot.webhooks))


class YamlWebhookSource:
    """Definitions read from a YAML file and reloaded when the file changes.

    Accepted layouts::

        webhooks:
          name: {...}

        integration:
          webhooks:
            name: {...}

    An invalid file is logged and the last good definitions stay in effect.
    A missing file means no webhooks.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self._path = Path(path)
        self._stamp: tuple[int, int] | None = None
        self._snapshot = WebhookSnapshot()

    @property
    def path(self) -> Path:
        return self._path

    def snapshot(self) -> WebhookSnapshot:
        try:
            stat = self._path.stat()
        except FileNotFoundError:
            if self._stamp is not None:
                logger.warning("webhook configuration file removed", path=str(self._path))
                self._stamp = None
                self._snapshot = WebhookSnapshot()
            return self._snapshot

        stamp = (stat.st_mtime_ns, stat.st_size)
        if stamp != self._stamp:
            self._reload(stamp)
        return self._snapshot

    def _reload(self, stamp: tuple[int, int]) -> None:
        # remember the stamp even on failure so a broken file is reported once;
        # ValueError covers undecodable bytes (UnicodeDecodeError)
        self._stamp = stamp
        try:
            self._snapshot = parse_webhooks(self._read())
        except (OSError, ValueError, yaml.YAMLError, WebhookConfigError) as exc:
            logger.error(
                "failed to load webhook configuration, keeping previous definitions",
                path=str(self._path),
                error=str(exc),
            )
            return
        logger.info(
            "webhook configuration loaded",
            path=str(self._path),
            webhooks=sorted(self._snapshot.webhooks),
        )

    def _read(self) -> Mapping[str, Any] | None:
        with self._path.open(encoding="utf-8") as fh:
            document = yaml.safe_load(fh) or {}
        if not isinstance(document, dict):
            raise WebhookConfigError("webhook configuration must be a mapping")
        if "integration" in document:
            document = document.get("integration") or {}
            if not isinstance(document, dict):
                raise WebhookConfigError("'integration' must be a mapping")
        webhooks = document.get("webhooks")
        if webhooks is None:
            return None
        if not isinstance(webhooks, dict):
            raise WebhookConfigError("'webhooks' must be a mapping of name to definition")
        return {str(name): _restore_on_key(definition) for name, definition in webhooks.items()}


def _restore_on_key(definition: Any) -> Any:
    # YAML 1.1 loads a bare ``on:`` key as the boolean True
    if isinstance(definition, dict) and True in definition and "on" not in definition:
        definition = dict(definition)
        definition["on"] = definition.pop(True)
    return definition
