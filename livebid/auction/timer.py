"""Countdown ticking shared by every replica.

Each replica ticks independently. The decrement is atomic on the state store,
so redundant tickers still advance a single countdown. Expiry is a single
guarded write that only succeeds while the countdown is at zero, which
decides the one replica that announces the end and loses to a bid that
extended the clock first.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging

from ..config import AuctionConfig
from ..errors import StoreUnavailable
from ..storage import StateStore
from .fanout import UpdateChannel
from .models import AuctionField, StateChangeEvent
from .service import publish_event

logger = logging.getLogger(__name__)


class CountdownTimer:
    def __init__(self, store: StateStore, channel: UpdateChannel, settings: AuctionConfig) -> None:
        self._store = store
        self._channel = channel
        self._settings = settings
        self._task: asyncio.Task[None] | None = None

    async def tick(self) -> StateChangeEvent | None:
        if not await self._store.get_bool(AuctionField.RUNNING):
            return None
        remaining = await self._store.decrement_and_get(
            AuctionField.TIME, running_field=AuctionField.RUNNING
        )
        if remaining > 0:
            state = await self._store.snapshot()
            if not state.running:
                return None
            event = StateChangeEvent.update(dataclasses.replace(state, time_left=remaining))
            await publish_event(self._channel, event)
            return event

        if not await self._store.expire(AuctionField.RUNNING, AuctionField.TIME):
            return None
        state = await self._store.snapshot()
        event = StateChangeEvent.end(state, self._settings.sold_message)
        logger.info(
            "Auction ended item=%s price=%s winner=%s",
            state.item_name,
            state.current_price,
            state.high_bidder,
        )
        await publish_event(self._channel, event)
        return event

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self._settings.tick_seconds)
            try:
                await self.tick()
            except StoreUnavailable as exc:
                logger.warning("Countdown tick skipped: %s", exc)
            except Exception:
                logger.exception("Countdown tick failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
