"""Unit tests for inbound viewer message handling."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from livebid.auction.models import AuctionField, EventKind
from livebid.errors import ProtocolError, StoreUnavailable
from livebid.events.handler import MessageHandler
from livebid.events.validators import normalize_message, validate_message


@pytest.fixture
def handler(service):
    return MessageHandler(service)


class TestValidation:
    def test_aliases_are_normalized(self):
        assert normalize_message("bid", {"type": "bid", "username": "al", "amount": 5}) == {
            "type": "bid",
            "bidder": "al",
            "amount": 5,
        }
        assert validate_message({"type": "start", "item_name": "GPU", "amount": 500})[
            "opening_price"
        ] == 500

    @pytest.mark.parametrize(
        "payload",
        [
            {"bidder": "alice", "amount": 5},
            {"type": "shout"},
            {"type": "bid", "amount": 5},
            {"type": "start", "item_name": "", "opening_price": 5},
            {"type": "start", "item_name": "GPU", "opening_price": -1},
            {"type": "start", "item_name": "GPU", "opening_price": 2**53},
        ],
    )
    def test_malformed_messages_raise_protocol_error(self, payload):
        with pytest.raises(ProtocolError):
            validate_message(payload)


class TestMessageHandler:
    @pytest.mark.asyncio
    async def test_start_then_bid(self, handler, store, recorder):
        assert await handler.handle({"type": "start", "item_name": "GPU", "opening_price": 500}) is None
        assert await handler.handle({"type": "bid", "bidder": "alice", "amount": "600"}) is None
        await recorder.drain()

        assert await store.get_int(AuctionField.PRICE) == 600

    @pytest.mark.asyncio
    async def test_low_bid_returns_error_for_sender(self, handler):
        await handler.handle({"type": "start", "item_name": "GPU", "opening_price": 500})

        reply = await handler.handle({"type": "bid", "username": "bob", "amount": 500})

        assert reply.kind is EventKind.ERROR
        assert "exceed current price 500" in reply.message

    @pytest.mark.asyncio
    async def test_non_numeric_amount_returns_error(self, handler, store):
        await handler.handle({"type": "start", "item_name": "GPU", "opening_price": 500})

        reply = await handler.handle({"type": "bid", "bidder": "bob", "amount": "lots"})

        assert reply.kind is EventKind.ERROR
        assert await store.get_int(AuctionField.PRICE) == 500

    @pytest.mark.asyncio
    async def test_oversized_amount_is_rejected_and_bidding_continues(
        self, handler, store, channel
    ):
        await handler.handle({"type": "start", "item_name": "GPU", "opening_price": 500})
        events = await channel.subscribe()

        reply = await handler.handle({"type": "bid", "bidder": "bob", "amount": 2**53})

        assert reply.kind is EventKind.ERROR
        assert await store.get_int(AuctionField.PRICE) == 500
        assert await store.get_str(AuctionField.BIDDER) == "House"

        assert await handler.handle({"type": "bid", "bidder": "alice", "amount": 600}) is None
        published = await asyncio.wait_for(events.__anext__(), timeout=1.0)
        assert (published.price, published.bidder) == (600, "alice")

    @pytest.mark.asyncio
    async def test_store_outage_is_reported_not_raised(self):
        service = AsyncMock()
        service.submit_bid = AsyncMock(side_effect=StoreUnavailable("down"))
        service.start_auction = AsyncMock(side_effect=StoreUnavailable("down"))
        handler = MessageHandler(service)

        bid_reply = await handler.handle({"type": "bid", "bidder": "bob", "amount": 5})
        start_reply = await handler.handle({"type": "start", "item_name": "GPU", "opening_price": 1})

        assert bid_reply.kind is EventKind.ERROR
        assert "unavailable" in bid_reply.message
        assert start_reply.kind is EventKind.ERROR
