"""
Meta endpoints that expose API metadata such as the route list.
"""
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.routing import APIRoute

router = APIRouter()


@router.get("/meta/endpoints")
async def list_api_endpoints(
    request: Request,
    tag: Optional[str] = Query(None, description="Only routes carrying this tag")
):
    """Return a sorted list of available API endpoints."""
    routes = {}

    for route in request.app.routes:
        if not isinstance(route, APIRoute) or not route.path.startswith("/api/"):
            continue
        if tag and tag not in route.tags:
            continue

        methods = sorted(m for m in route.methods if m not in {"HEAD", "OPTIONS"})
        if not methods:
            continue

        routes.setdefault((route.path, tuple(methods)), {
            "path": route.path,
            "methods": methods,
            "name": route.name,
            "summary": route.summary,
            "tags": route.tags,
        })

    ordered = sorted(routes.values(), key=lambda item: item["path"])
    return {
        "count": len(ordered),
        "routes": ordered,
    }
