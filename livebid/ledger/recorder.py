"""Write-behind recording of accepted bids."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..storage import BidSink

logger = logging.getLogger(__name__)


class BidRecorder:
    """Persists accepted bids off the acceptance path.

    The shared state store is authoritative for the live auction; the sink is a
    history log. A failed write is logged and dropped, never surfaced to the
    bidder and never used to revert an accepted bid.
    """

    def __init__(self, sink: BidSink) -> None:
        self._sink = sink
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record_bid(self, item_name: str, bidder: str, amount: int) -> None:
        task = asyncio.get_running_loop().create_task(self._write(item_name, bidder, amount))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, item_name: str, bidder: str, amount: int) -> None:
        try:
            await self._sink.record_bid(item_name, bidder, amount)
        except Exception:
            logger.exception(
                "Failed to persist bid item=%s bidder=%s amount=%s", item_name, bidder, amount
            )
            return
        logger.debug("Persisted bid item=%s bidder=%s amount=%s", item_name, bidder, amount)

    async def list_bids(self, item_name: str | None = None) -> list[dict[str, Any]]:
        return await self._sink.list_bids(item_name)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
