"""Encoding of auction fields stored as plain strings."""

from __future__ import annotations

from typing import Any, Mapping

from ..auction.models import AuctionField, AuctionState

TRUE = "1"
FALSE = "0"


def encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return TRUE if value else FALSE
    return str(value)


def parse_int(raw: str | None) -> int:
    if raw in (None, ""):
        return 0
    return int(raw)


def parse_bool(raw: str | None) -> bool:
    return raw in (TRUE, "true")


def state_from_values(values: Mapping[AuctionField, str | None]) -> AuctionState:
    return AuctionState(
        item_name=values.get(AuctionField.ITEM) or "",
        current_price=parse_int(values.get(AuctionField.PRICE)),
        high_bidder=values.get(AuctionField.BIDDER) or "",
        time_left=max(parse_int(values.get(AuctionField.TIME)), 0),
        running=parse_bool(values.get(AuctionField.RUNNING)),
        run_id=values.get(AuctionField.RUN) or "",
    )
