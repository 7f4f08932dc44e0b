"""Viewer connections attached to this replica."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from ..auction.models import StateChangeEvent
from ..errors import StoreUnavailable
from ..transport.canonical_json import encode_event

logger = logging.getLogger(__name__)


class ViewerConnection(Protocol):
    async def send_text(self, data: str) -> None: ...


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: set[ViewerConnection] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    async def add(
        self,
        connection: ViewerConnection,
        greeting: Callable[[], Awaitable[StateChangeEvent]],
    ) -> None:
        """Register ``connection``, then read and push the current state to it.

        The greeting is read only after registration so that a broadcast
        racing the attach is either delivered or already reflected in it.
        """
        async with self._lock:
            self._connections.add(connection)
        try:
            event = await greeting()
        except StoreUnavailable as exc:
            logger.warning("Greeting without state: %s", exc)
            event = StateChangeEvent.error("auction state unavailable")
        if not await self._send(connection, encode_event(event).decode()):
            await self.remove(connection)

    async def remove(self, connection: ViewerConnection) -> None:
        async with self._lock:
            self._connections.discard(connection)

    async def send(self, connection: ViewerConnection, event: StateChangeEvent) -> bool:
        """Send to a single viewer, dropping it on failure."""
        if await self._send(connection, encode_event(event).decode()):
            return True
        await self.remove(connection)
        return False

    async def broadcast(self, event: StateChangeEvent) -> int:
        message = encode_event(event).decode()
        async with self._lock:
            targets = list(self._connections)
        failed = []
        for connection in targets:
            if not await self._send(connection, message):
                failed.append(connection)
        if failed:
            async with self._lock:
                self._connections.difference_update(failed)
            logger.info("Dropped %d viewer connection(s) after write failure", len(failed))
        return len(targets) - len(failed)

    async def _send(self, connection: ViewerConnection, message: str) -> bool:
        try:
            await connection.send_text(message)
        except Exception as exc:
            logger.debug("Viewer write failed: %s", exc)
            return False
        return True
