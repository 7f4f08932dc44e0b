"""Expose currently loaded server config for debugging."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..config import ServerConfig

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_config(request: Request) -> ServerConfig:
    return request.app.state.server_config


@router.get("/config")
async def config(
    request: Request,
    config: ServerConfig = Depends(_get_config),
) -> dict:
    auction = config.auction
    return {
        "state_backend": config.state.backend,
        "channel_backend": config.channel.backend,
        "persistence_backend": config.persistence.backend,
        "auction": {
            "duration_seconds": auction.duration_seconds,
            "tick_seconds": auction.tick_seconds,
            "snipe_threshold_seconds": auction.snipe_threshold_seconds,
            "snipe_extension_seconds": auction.snipe_extension_seconds,
            "house_bidder": auction.house_bidder,
        },
        "version": request.app.version,
    }
