"""JSON encoding of events for third-party webhook consumers.

Encoding rules:

* model field names are lower camel case at every nesting level, while keys
  of plain mappings inside the payload are data and go out unchanged;
* ``None`` values are kept as explicit ``null``;
* the event type is sent as its textual name;
* IP addresses, UUIDs and datetimes are sent in their canonical text form;
* the output is HTML-safe: non-ASCII characters and ``< > & ' `` ` are
  ``\\uXXXX`` escaped, so the body can be embedded in a page or script as is.

Never relax the escaping: consumers include browser-based tooling that
decodes the payload into HTML.
"""
from __future__ import annotations

import json
from datetime import date, datetime, time
from enum import Enum
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network
from pathlib import PurePath
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from integration_service.domain.events import Event

_HTML_UNSAFE = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    ord("'"): "\\u0027",
    ord("`"): "\\u0060",
}


def _lower_leading(word: str) -> str:
    # "URL" -> "url", "IPAddress" -> "ipAddress", "Local" -> "local"
    upper = 0
    while upper < len(word) and word[upper].isupper():
        upper += 1
    if upper == len(word):
        return word.lower()
    if upper <= 1:
        return word[:1].lower() + word[1:]
    return word[: upper - 1].lower() + word[upper - 1 :]


def camelize(name: str) -> str:
    """``local_filename`` -> ``localFilename``; already camel names are kept."""
    head, *rest = name.split("_")
    if not rest and head[:1].islower():
        return head
    return _lower_leading(head) + "".join(part[:1].upper() + part[1:] for part in rest if part)


def _to_wire(value: Any) -> Any:
    # model field names (declared and extra) are camel-cased, dict keys are data
    if isinstance(value, BaseModel):
        fields = {name: getattr(value, name) for name in type(value).model_fields}
        fields.update(value.model_extra or {})
        return {camelize(name): _to_wire(item) for name, item in fields.items()}
    if isinstance(value, dict):
        return {key: _to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


def _default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (UUID, IPv4Address, IPv6Address, IPv4Network, IPv6Network, PurePath)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_event(event: Event) -> str:
    """Serialize ``event`` with its concrete type's fields (extras included)."""
    body = json.dumps(
        _to_wire(event),
        default=_default,
        ensure_ascii=True,
        allow_nan=False,
        separators=(",", ":"),
    )
    return body.translate(_HTML_UNSAFE)
