"""Shared auction data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class AuctionField(str, Enum):
    ITEM = "item"
    PRICE = "price"
    BIDDER = "bidder"
    TIME = "time"
    RUNNING = "running"
    RUN = "run"


class EventKind(str, Enum):
    UPDATE = "update"
    ERROR = "error"
    END = "end"


@dataclass(frozen=True)
class AuctionState:
    item_name: str = ""
    current_price: int = 0
    high_bidder: str = ""
    time_left: int = 0
    running: bool = False
    run_id: str = ""


@dataclass(frozen=True)
class BidRequest:
    bidder: str
    amount: int


@dataclass(frozen=True)
class BidOutcome:
    accepted: bool
    reason: str | None = None
    state: AuctionState | None = None


@dataclass(frozen=True)
class StateChangeEvent:
    kind: EventKind
    item_name: str = ""
    price: int = 0
    bidder: str = ""
    time_left: int = 0
    message: str = ""
    run_id: str = ""

    @classmethod
    def update(cls, state: AuctionState, message: str = "") -> "StateChangeEvent":
        return cls(
            kind=EventKind.UPDATE,
            item_name=state.item_name,
            price=state.current_price,
            bidder=state.high_bidder,
            time_left=state.time_left,
            message=message,
            run_id=state.run_id,
        )

    @classmethod
    def end(cls, state: AuctionState, message: str) -> "StateChangeEvent":
        return cls(
            kind=EventKind.END,
            item_name=state.item_name,
            price=state.current_price,
            bidder=state.high_bidder,
            time_left=0,
            message=message,
            run_id=state.run_id,
        )

    @classmethod
    def error(cls, message: str) -> "StateChangeEvent":
        return cls(kind=EventKind.ERROR, message=message)

    def to_wire(self) -> dict[str, Any]:
        """Render the viewer-facing message for this event."""
        if self.kind is EventKind.ERROR:
            return {"type": self.kind.value, "message": self.message}
        if self.kind is EventKind.END:
            return {
                "type": self.kind.value,
                "item_name": self.item_name,
                "final_price": self.price,
                "winner": self.bidder,
                "message": self.message,
                "run_id": self.run_id,
            }
        payload: dict[str, Any] = {
            "type": self.kind.value,
            "item_name": self.item_name,
            "price": self.price,
            "bidder": self.bidder,
            "time_left": self.time_left,
            "run_id": self.run_id,
        }
        if self.message:
            payload["message"] = self.message
        return payload

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> "StateChangeEvent":
        kind = EventKind(payload["type"])
        if kind is EventKind.ERROR:
            return cls.error(str(payload.get("message", "")))
        if kind is EventKind.END:
            return cls(
                kind=kind,
                item_name=str(payload.get("item_name", "")),
                price=int(payload.get("final_price", 0)),
                bidder=str(payload.get("winner", "")),
                time_left=0,
                message=str(payload.get("message", "")),
                run_id=str(payload.get("run_id", "")),
            )
        return cls(
            kind=kind,
            item_name=str(payload.get("item_name", "")),
            price=int(payload.get("price", 0)),
            bidder=str(payload.get("bidder", "")),
            time_left=int(payload.get("time_left", 0)),
            message=str(payload.get("message", "")),
            run_id=str(payload.get("run_id", "")),
        )
