"""Health check endpoints.

- /health: liveness only
- /healthz: document store, Redis and itinerary server status
"""

import json
from typing import Any

import redis
from fastapi import APIRouter, Response
from sqlalchemy import text

from backend.tripline.adapters.itinerary_server import ItineraryServerClient
from backend.tripline.config import Settings, get_settings
from backend.tripline.db.engine import get_session_factory
from backend.tripline.errors import UpstreamServiceUnavailable

router = APIRouter()


async def check_store(settings: Settings) -> tuple[bool, str]:
    """Check document store connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.database_url:
        return (True, "in_memory")

    try:
        with get_session_factory()() as session:
            session.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_itinerary_server(settings: Settings) -> tuple[bool, str]:
    """Probe the itinerary server's own health endpoint.

    Returns:
        (is_ok, status_message)
    """
    async with ItineraryServerClient(settings) as client:
        try:
            await client.check_health()
        except UpstreamServiceUnavailable as e:
            if e.status_code is not None:
                return (False, f"error: HTTP {e.status_code}")
            return (False, "unreachable")
    return (True, "ok")


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if all components are ok
        503 if any component fails (generation and edits cannot succeed
        without the itinerary server)
    """
    settings = get_settings()

    store_ok, store_status = await check_store(settings)
    redis_ok, redis_status = await check_redis(settings)
    server_ok, server_status = await check_itinerary_server(settings)

    all_ok = store_ok and redis_ok and server_ok

    response_body = {
        "status": "ok" if all_ok else "degraded",
        "components": {
            "store": store_status,
            "redis": redis_status,
            "itinerary_server": server_status,
        },
    }

    if not all_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
