"""Directory listing endpoints."""
from __future__ import annotations

from aiohttp import web

from integration_service.api.utils import query_bool, require_query
from integration_service.core.exceptions import InvalidDirectoryError
from integration_service.domain.files import EnumerationOptions
from integration_service.services.dependencies import get_file_service

routes = web.RouteTableDef()


def _enumeration_options(request: web.Request) -> EnumerationOptions:
    query = request.rel_url.query
    return EnumerationOptions(
        recurse_subdirectories=query_bool(request, "recurse"),
        match_pattern=query.get("pattern") or "*",
        skip_hidden=not query_bool(request, "include_hidden"),
    )


@routes.get("/api/v1/files/directories")
async def list_directories(request: web.Request):
    parent = require_query(request, "parent")
    service = get_file_service(request)
    try:
        entries = await service.list_directories(parent, _enumeration_options(request))
    except InvalidDirectoryError as exc:
        raise web.HTTPForbidden(text=str(exc)) from exc
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise web.HTTPNotFound(text=f"Directory '{parent}' not found") from exc
    return web.json_response({"directories": [entry.model_dump(mode="json") for entry in entries]})


@routes.get("/api/v1/files")
async def list_files(request: web.Request):
    parent = require_query(request, "parent")
    service = get_file_service(request)
    try:
        entries = await service.list_files(parent, _enumeration_options(request))
    except InvalidDirectoryError as exc:
        raise web.HTTPForbidden(text=str(exc)) from exc
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise web.HTTPNotFound(text=f"Directory '{parent}' not found") from exc
    return web.json_response({"files": [entry.model_dump(mode="json") for entry in entries]})
