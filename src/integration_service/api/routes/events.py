"""Event publishing endpoint (lets operators trigger webhooks on demand)."""
from __future__ import annotations

from aiohttp import web
from pydantic import ValidationError

from integration_service.api.utils import read_json_object
from integration_service.domain.events import Event, EventType
from integration_service.services.dependencies import get_event_bus

routes = web.RouteTableDef()

_RESERVED_FIELDS = {"type", "id", "timestamp", "version"}


@routes.post("/api/v1/events/{event_type}")
async def publish_event(request: web.Request):
    event_type = request.match_info["event_type"].strip()
    if event_type.casefold() == EventType.ANY.value.casefold():
        raise web.HTTPBadRequest(text="'Any' is a matcher, not an event type")

    payload = await read_json_object(request, allow_empty=True)
    reserved = sorted(_RESERVED_FIELDS & payload.keys())
    if reserved:
        raise web.HTTPBadRequest(text=f"Reserved fields in payload: {', '.join(reserved)}")

    try:
        event = Event(type=event_type, **payload)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    get_event_bus(request.app).publish(event)
    return web.json_response({"id": str(event.id), "type": event.type}, status=202)
