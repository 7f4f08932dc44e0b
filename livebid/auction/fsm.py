"""Auction lifecycle phases derived from the shared state."""

from __future__ import annotations

from enum import Enum

from .models import AuctionState


class AuctionPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ENDED = "ended"


def phase_of(state: AuctionState) -> AuctionPhase:
    if state.running:
        return AuctionPhase.RUNNING
    if state.item_name:
        return AuctionPhase.ENDED
    return AuctionPhase.IDLE
