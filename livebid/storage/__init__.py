"""Storage backend factory."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..auction.models import AuctionField, AuctionState
from ..config import ServerConfig
from .in_memory import InMemoryBidSink, InMemoryStateStore
from .postgres import PostgresBidSink
from .redis import RedisStateStore


class StateStore(Protocol):
    async def ping(self) -> None: ...

    async def get(self, field: AuctionField) -> str | None: ...

    async def get_int(self, field: AuctionField) -> int: ...

    async def get_str(self, field: AuctionField) -> str: ...

    async def get_bool(self, field: AuctionField) -> bool: ...

    async def set(self, field: AuctionField, value: Any) -> None: ...

    async def set_many(self, values: Mapping[AuctionField, Any]) -> None: ...

    async def decrement_and_get(
        self, field: AuctionField, *, running_field: AuctionField | None = None
    ) -> int:
        """Decrement ``field``; a no-op returning the current value once ``running_field`` is unset."""
        ...

    async def compare_and_set_bid(
        self,
        price_field: AuctionField,
        bidder_field: AuctionField,
        new_price: int,
        new_bidder: str,
        *,
        running_field: AuctionField | None = None,
        time_field: AuctionField | None = None,
        snipe_threshold: int = 0,
        snipe_extension: int = 0,
    ) -> bool:
        """Accept ``new_price`` only if it strictly exceeds the stored price.

        In the same atomic step, ``time_field`` is extended by ``snipe_extension``
        when it is below ``snipe_threshold``.
        """
        ...

    async def expire(self, running_field: AuctionField, time_field: AuctionField) -> bool:
        """Clear ``running_field`` if it is set and ``time_field`` has reached zero."""
        ...

    async def snapshot(self) -> AuctionState: ...

    async def close(self) -> None: ...


class BidSink(Protocol):
    """Durable history of accepted bids."""

    async def record_bid(self, item_name: str, bidder: str, amount: int) -> dict[str, Any]: ...

    async def list_bids(self, item_name: str | None = None) -> list[dict[str, Any]]: ...

    async def close(self) -> None: ...


def build_state_store(config: ServerConfig) -> StateStore:
    backend = config.state.backend
    options = dict(config.state.options)
    if backend == "in_memory":
        return InMemoryStateStore()
    if backend == "redis":
        return RedisStateStore(**options)
    raise ValueError(f"unknown state backend {backend}")


def build_bid_sink(config: ServerConfig) -> BidSink:
    backend = config.persistence.backend
    options = dict(config.persistence.options)
    if backend == "in_memory":
        return InMemoryBidSink()
    if backend == "postgres":
        return PostgresBidSink(**options)
    raise ValueError(f"unknown persistence backend {backend}")
