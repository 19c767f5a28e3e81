"""Helper utilities for API handlers."""
from __future__ import annotations

import json
import math
from functools import partial
from typing import Any

from aiohttp import web

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value


# NaN, Infinity and overflowing literals cannot be sent on to webhooks
_strict_loads = partial(json.loads, parse_constant=_reject_constant, parse_float=_finite_float)


async def read_json_object(request: web.Request, *, allow_empty: bool = False) -> dict[str, Any]:
    """Parse a JSON object body, raising HTTPBadRequest on invalid input."""
    if allow_empty and not request.can_read_body:
        return {}
    try:
        data = await request.json(loads=_strict_loads)
    except ValueError as exc:
        raise web.HTTPBadRequest(text="Invalid JSON payload") from exc
    if data is None and allow_empty:
        return {}
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return data


def query_bool(request: web.Request, name: str, default: bool = False) -> bool:
    raw = request.rel_url.query.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise web.HTTPBadRequest(text=f"{name} must be a boolean")


def require_query(request: web.Request, name: str) -> str:
    value = request.rel_url.query.get(name, "").strip()
    if not value:
        raise web.HTTPBadRequest(text=f"{name} query parameter is required")
    return value
