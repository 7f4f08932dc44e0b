"""Dispatch of inbound viewer messages to auction operations."""

from __future__ import annotations

import logging
from typing import Any

from ..auction.models import BidRequest, StateChangeEvent
from ..auction.service import AuctionService, parse_amount
from ..errors import InvalidBid, StoreUnavailable
from .validators import validate_message

logger = logging.getLogger(__name__)


class MessageHandler:
    def __init__(self, service: AuctionService) -> None:
        self._service = service

    async def handle(self, payload: dict[str, Any]) -> StateChangeEvent | None:
        """Apply one viewer message.

        Returns an event addressed only to the sender (rejections and transient
        failures), or ``None`` when the outcome reaches viewers over the update
        channel. Raises ``ProtocolError`` for malformed messages.
        """
        message = validate_message(payload)
        if message["type"] == "bid":
            return await self._handle_bid(message)
        return await self._handle_start(message)

    async def _handle_bid(self, message: dict[str, Any]) -> StateChangeEvent | None:
        try:
            request = BidRequest(bidder=message["bidder"], amount=parse_amount(message["amount"]))
        except InvalidBid as exc:
            return StateChangeEvent.error(str(exc))
        try:
            outcome = await self._service.submit_bid(request)
        except StoreUnavailable as exc:
            logger.warning("Bid from %s not placed: %s", request.bidder, exc)
            return StateChangeEvent.error("auction temporarily unavailable, bid not placed")
        if not outcome.accepted:
            return StateChangeEvent.error(f"bid rejected: {outcome.reason}")
        return None

    async def _handle_start(self, message: dict[str, Any]) -> StateChangeEvent | None:
        try:
            await self._service.start_auction(message["item_name"], message["opening_price"])
        except StoreUnavailable as exc:
            logger.warning("Auction start failed: %s", exc)
            return StateChangeEvent.error("auction temporarily unavailable, start failed")
        return None
