"""In-memory backends for single-process deployments and tests."""

from __future__ import annotations

import asyncio
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Mapping

from ..auction.models import AuctionField, AuctionState
from .fields import encode_value, parse_bool, parse_int, state_from_values


class InMemoryStateStore:
    def __init__(self) -> None:
        self._values: dict[AuctionField, str] = {}
        self._lock = asyncio.Lock()

    async def ping(self) -> None:
        return None

    async def get(self, field: AuctionField) -> str | None:
        async with self._lock:
            return self._values.get(field)

    async def get_int(self, field: AuctionField) -> int:
        return parse_int(await self.get(field))

    async def get_str(self, field: AuctionField) -> str:
        return await self.get(field) or ""

    async def get_bool(self, field: AuctionField) -> bool:
        return parse_bool(await self.get(field))

    async def set(self, field: AuctionField, value: Any) -> None:
        async with self._lock:
            self._values[field] = encode_value(value)

    async def set_many(self, values: Mapping[AuctionField, Any]) -> None:
        async with self._lock:
            for field, value in values.items():
                self._values[field] = encode_value(value)

    async def decrement_and_get(
        self, field: AuctionField, *, running_field: AuctionField | None = None
    ) -> int:
        async with self._lock:
            current = parse_int(self._values.get(field))
            if running_field is not None and not parse_bool(self._values.get(running_field)):
                return current
            self._values[field] = str(current - 1)
            return current - 1

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
        async with self._lock:
            if running_field is not None and not parse_bool(self._values.get(running_field)):
                return False
            if new_price <= parse_int(self._values.get(price_field)):
                return False
            self._values[price_field] = str(new_price)
            self._values[bidder_field] = new_bidder
            if time_field is not None:
                time_left = parse_int(self._values.get(time_field))
                if time_left < snipe_threshold:
                    self._values[time_field] = str(time_left + snipe_extension)
            return True

    async def expire(self, running_field: AuctionField, time_field: AuctionField) -> bool:
        async with self._lock:
            if not parse_bool(self._values.get(running_field)):
                return False
            if parse_int(self._values.get(time_field)) > 0:
                return False
            self._values[running_field] = encode_value(False)
            self._values[time_field] = "0"
            return True

    async def snapshot(self) -> AuctionState:
        async with self._lock:
            return state_from_values(dict(self._values))

    async def close(self) -> None:
        return None


class InMemoryBidSink:
    def __init__(self) -> None:
        self._bids: list[dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def record_bid(self, item_name: str, bidder: str, amount: int) -> dict[str, Any]:
        record = {
            "item_name": item_name,
            "bidder": bidder,
            "amount": amount,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        async with self._lock:
            self._bids.append(record)
            return deepcopy(record)

    async def list_bids(self, item_name: str | None = None) -> list[dict[str, Any]]:
        async with self._lock:
            return [
                deepcopy(bid)
                for bid in self._bids
                if item_name is None or bid["item_name"] == item_name
            ]

    async def close(self) -> None:
        return None
