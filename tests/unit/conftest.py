"""Shared fixtures wiring in-memory backends together."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from livebid.auction.fanout import InMemoryUpdateChannel
from livebid.auction.service import AuctionService
from livebid.auction.timer import CountdownTimer
from livebid.config import AuctionConfig
from livebid.connections.registry import ConnectionRegistry
from livebid.ledger.recorder import BidRecorder
from livebid.storage.in_memory import InMemoryBidSink, InMemoryStateStore


class FakeConnection:
    """Viewer connection double collecting sent messages."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("viewer went away")
        self.sent.append(data)


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def settings() -> AuctionConfig:
    return AuctionConfig(
        duration_seconds=60,
        tick_seconds=1.0,
        snipe_threshold_seconds=10,
        snipe_extension_seconds=10,
        house_bidder="House",
        sold_message="SOLD!",
    )


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def channel() -> InMemoryUpdateChannel:
    return InMemoryUpdateChannel()


@pytest.fixture
def sink() -> InMemoryBidSink:
    return InMemoryBidSink()


@pytest.fixture
def recorder(sink) -> BidRecorder:
    return BidRecorder(sink)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def service(store, channel, recorder, settings) -> AuctionService:
    return AuctionService(store, channel, recorder, settings)


@pytest.fixture
def timer(store, channel, settings) -> CountdownTimer:
    return CountdownTimer(store, channel, settings)
