"""Unit tests for write-behind bid persistence."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from livebid.auction.models import AuctionField, BidRequest
from livebid.auction.service import AuctionService
from livebid.errors import PersistenceFailure
from livebid.ledger.recorder import BidRecorder


@pytest.fixture
def failing_sink():
    sink = AsyncMock()
    sink.record_bid = AsyncMock(side_effect=PersistenceFailure("database down"))
    return sink


class TestBidRecorder:
    @pytest.mark.asyncio
    async def test_record_returns_before_write_completes(self):
        release = asyncio.Event()
        sink = AsyncMock()

        async def slow_write(item_name, bidder, amount):
            await release.wait()
            return {}

        sink.record_bid = AsyncMock(side_effect=slow_write)
        recorder = BidRecorder(sink)

        recorder.record_bid("GPU", "alice", 600)
        await asyncio.sleep(0)

        assert recorder.pending == 1
        release.set()
        await recorder.drain()
        assert recorder.pending == 0
        sink.record_bid.assert_awaited_once_with("GPU", "alice", 600)

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_dropped(self, failing_sink, caplog):
        recorder = BidRecorder(failing_sink)

        with caplog.at_level(logging.ERROR, logger="livebid.ledger.recorder"):
            recorder.record_bid("GPU", "alice", 600)
            await recorder.drain()

        assert "Failed to persist bid" in caplog.text
        assert recorder.pending == 0

    @pytest.mark.asyncio
    async def test_sink_failure_never_reverts_accepted_bid(
        self, store, channel, settings, failing_sink
    ):
        recorder = BidRecorder(failing_sink)
        service = AuctionService(store, channel, recorder, settings)
        await service.start_auction("GPU", 500)

        outcome = await service.submit_bid(BidRequest(bidder="alice", amount=600))
        await recorder.drain()

        assert outcome.accepted is True
        assert await store.get_int(AuctionField.PRICE) == 600
        assert await store.get_str(AuctionField.BIDDER) == "alice"


class TestInMemorySink:
    @pytest.mark.asyncio
    async def test_list_filters_by_item(self, sink):
        await sink.record_bid("GPU", "alice", 600)
        await sink.record_bid("CPU", "bob", 100)

        bids = await sink.list_bids("GPU")

        assert len(bids) == 1
        assert bids[0]["bidder"] == "alice"
        assert bids[0]["created_at"]
        assert len(await sink.list_bids()) == 2
