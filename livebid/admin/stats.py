"""Operational stats endpoint."""

from __future__ import annotations

from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auction.service import AuctionService
from ..connections.registry import ConnectionRegistry
from ..errors import StoreUnavailable
from ..ledger.recorder import BidRecorder

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_recorder(request: Request) -> BidRecorder:
    return request.app.state.recorder


def _get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def _get_service(request: Request) -> AuctionService:
    return request.app.state.auction_service


@router.get("/stats")
async def stats(
    recorder: BidRecorder = Depends(_get_recorder),
    registry: ConnectionRegistry = Depends(_get_registry),
    service: AuctionService = Depends(_get_service),
) -> dict[str, Any]:
    try:
        state = await service.snapshot()
    except StoreUnavailable:
        state = None
    bids = await recorder.list_bids(state.item_name if state and state.item_name else None)

    bids_by_bidder: Counter[str] = Counter(bid["bidder"] for bid in bids)
    highest = max((bid["amount"] for bid in bids), default=None)

    return {
        "item_name": state.item_name if state else None,
        "running": state.running if state else None,
        "current_price": state.current_price if state else None,
        "time_left": state.time_left if state else None,
        "persisted_bids": len(bids),
        "pending_writes": recorder.pending,
        "highest_persisted_bid": highest,
        "bids_by_bidder": dict(bids_by_bidder),
        "local_connections": len(registry),
    }
