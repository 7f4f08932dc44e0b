"""Admin health endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from ..errors import StoreUnavailable

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health")
async def health(request: Request) -> dict[str, int | str | bool]:
    start_time = getattr(request.app.state, "start_time", None)
    if start_time:
        uptime = int((datetime.now(timezone.utc) - start_time).total_seconds())
    else:
        uptime = 0
    try:
        await request.app.state.store.ping()
        store_reachable = True
    except StoreUnavailable:
        store_reachable = False
    return {
        "status": "healthy" if store_reachable else "degraded",
        "uptime_seconds": uptime,
        "version": request.app.version,
        "state_store_reachable": store_reachable,
        "connections": len(request.app.state.registry),
    }
