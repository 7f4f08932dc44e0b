"""Start and bid operations executed against the shared state store."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from ..config import AuctionConfig
from ..errors import BusUnavailable, InvalidBid
from ..ledger.recorder import BidRecorder
from ..storage import StateStore
from .fanout import UpdateChannel
from .fsm import AuctionPhase, phase_of
from .models import AuctionField, AuctionState, BidOutcome, BidRequest, StateChangeEvent

logger = logging.getLogger(__name__)

# Largest amount the bid ledger column and the integer-only wire codec both hold.
MAX_AMOUNT = 2_147_483_647


def parse_amount(value: Any) -> int:
    """Coerce a bid amount from a viewer message into a whole number."""
    if isinstance(value, bool):
        raise InvalidBid("amount must be a number")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise InvalidBid(f"amount {value!r} is not a number") from exc
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidBid("amount must be a whole number")
    if value < 0:
        raise InvalidBid("amount must not be negative")
    if value > MAX_AMOUNT:
        raise InvalidBid(f"amount must not exceed {MAX_AMOUNT}")
    return value


async def publish_event(channel: UpdateChannel, event: StateChangeEvent) -> bool:
    """Publish on the update channel; a lost publish never undoes a committed change."""
    try:
        await channel.publish(event)
    except BusUnavailable as exc:
        logger.warning("Failed to publish %s event: %s", event.kind.value, exc)
        return False
    return True


class AuctionService:
    def __init__(
        self,
        store: StateStore,
        channel: UpdateChannel,
        recorder: BidRecorder,
        settings: AuctionConfig,
    ) -> None:
        self._store = store
        self._channel = channel
        self._recorder = recorder
        self._settings = settings

    async def snapshot(self) -> AuctionState:
        return await self._store.snapshot()

    async def current_event(self) -> StateChangeEvent:
        """Build the event a freshly attached or resynchronised viewer should see."""
        state = await self._store.snapshot()
        if phase_of(state) is AuctionPhase.ENDED:
            return StateChangeEvent.end(state, self._settings.sold_message)
        return StateChangeEvent.update(state)

    async def start_auction(self, item_name: str, opening_price: int) -> AuctionState:
        state = AuctionState(
            item_name=item_name,
            current_price=opening_price,
            high_bidder=self._settings.house_bidder,
            time_left=self._settings.duration_seconds,
            running=True,
            run_id=uuid.uuid4().hex[:12],
        )
        await self._store.set_many(
            {
                AuctionField.ITEM: state.item_name,
                AuctionField.PRICE: state.current_price,
                AuctionField.BIDDER: state.high_bidder,
                AuctionField.TIME: state.time_left,
                AuctionField.RUNNING: state.running,
                AuctionField.RUN: state.run_id,
            }
        )
        logger.info(
            "Auction started item=%s opening=%s run=%s",
            item_name,
            opening_price,
            state.run_id,
        )
        await publish_event(self._channel, StateChangeEvent.update(state))
        return state

    async def submit_bid(self, request: BidRequest) -> BidOutcome:
        if not await self._store.get_bool(AuctionField.RUNNING):
            return BidOutcome(accepted=False, reason="auction is not running")
        accepted = await self._store.compare_and_set_bid(
            AuctionField.PRICE,
            AuctionField.BIDDER,
            request.amount,
            request.bidder,
            running_field=AuctionField.RUNNING,
            time_field=AuctionField.TIME,
            snipe_threshold=self._settings.snipe_threshold_seconds,
            snipe_extension=self._settings.snipe_extension_seconds,
        )
        if not accepted:
            state = await self._store.snapshot()
            if not state.running:
                return BidOutcome(accepted=False, reason="auction is not running", state=state)
            return BidOutcome(
                accepted=False,
                reason=f"bid must exceed current price {state.current_price}",
                state=state,
            )
        state = await self._store.snapshot()
        logger.info(
            "Bid accepted item=%s bidder=%s amount=%s time_left=%s",
            state.item_name,
            request.bidder,
            request.amount,
            state.time_left,
        )
        self._recorder.record_bid(state.item_name, request.bidder, request.amount)
        await publish_event(self._channel, StateChangeEvent.update(state))
        return BidOutcome(accepted=True, state=state)
