"""State-change distribution across replicas using publish/subscribe transports."""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterator, Protocol

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..config import ServerConfig
from ..connections.registry import ConnectionRegistry
from ..errors import BusUnavailable, ProtocolError, StoreUnavailable
from ..transport.canonical_json import decode_event, encode_event
from .models import EventKind, StateChangeEvent

if TYPE_CHECKING:  # pragma: no cover
    from .service import AuctionService

logger = logging.getLogger(__name__)


class UpdateChannel(Protocol):
    async def publish(self, event: StateChangeEvent) -> None: ...

    async def subscribe(self) -> AsyncIterator[StateChangeEvent]:
        """Return an endless iterator of events published from now on."""
        ...

    async def close(self) -> None: ...


class InMemoryUpdateChannel:
    """Process-local bus for single replica deployments."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[bytes]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: StateChangeEvent) -> None:
        payload = encode_event(event)
        for queue in list(self._subscribers):
            queue.put_nowait(payload)

    async def subscribe(self) -> AsyncIterator[StateChangeEvent]:
        queue: asyncio.Queue[bytes] = asyncio.Queue()
        self._subscribers.add(queue)
        return self._listen(queue)

    async def _listen(self, queue: asyncio.Queue[bytes]) -> AsyncIterator[StateChangeEvent]:
        try:
            while True:
                yield decode_event(await queue.get())
        finally:
            self._subscribers.discard(queue)

    async def close(self) -> None:
        self._subscribers.clear()


class RedisUpdateChannel:
    def __init__(
        self,
        *,
        url: str | None = None,
        channel: str = "auction:updates",
        client: aioredis.Redis | None = None,
    ) -> None:
        if client is None:
            if not url:
                raise ValueError("redis url missing")
            client = aioredis.from_url(url)
        self._redis = client
        self._channel = channel

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
            raise BusUnavailable(f"redis channel unreachable: {exc}") from exc

    async def publish(self, event: StateChangeEvent) -> None:
        with self._translate_errors():
            await self._redis.publish(self._channel, encode_event(event))

    async def subscribe(self) -> AsyncIterator[StateChangeEvent]:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        with self._translate_errors():
            await pubsub.subscribe(self._channel)
        return self._listen(pubsub)

    async def _listen(self, pubsub: Any) -> AsyncIterator[StateChangeEvent]:
        try:
            with self._translate_errors():
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    try:
                        yield decode_event(message["data"])
                    except ProtocolError as exc:
                        logger.warning("Dropping undecodable bus payload: %s", exc)
        finally:
            await pubsub.aclose()

    async def close(self) -> None:
        await self._redis.aclose()


def build_update_channel(config: ServerConfig) -> UpdateChannel:
    backend = config.channel.backend
    options = dict(config.channel.options)
    if backend == "in_memory":
        return InMemoryUpdateChannel()
    if backend == "redis":
        return RedisUpdateChannel(**options)
    raise ValueError(f"unknown channel backend {backend}")


class UpdateRelay:
    """Forwards bus events to the viewers attached to this replica."""

    def __init__(
        self,
        channel: UpdateChannel,
        registry: ConnectionRegistry,
        service: "AuctionService",
        *,
        resubscribe_delay_seconds: float = 1.0,
    ) -> None:
        self._channel = channel
        self._registry = registry
        self._service = service
        self._delay = resubscribe_delay_seconds
        self._ended_run: str | None = None
        self._task: asyncio.Task[None] | None = None

    async def deliver(self, event: StateChangeEvent) -> int:
        if event.kind is EventKind.UPDATE and event.run_id and event.run_id == self._ended_run:
            logger.debug("Dropping stale update for ended run %s", event.run_id)
            return 0
        if event.kind is EventKind.END:
            self._ended_run = event.run_id
        return await self._registry.broadcast(event)

    async def resync(self) -> None:
        try:
            event = await self._service.current_event()
        except StoreUnavailable as exc:
            logger.warning("Resync skipped, state store unavailable: %s", exc)
            return
        await self.deliver(event)

    async def run(self) -> None:
        while True:
            try:
                events = await self._channel.subscribe()
                await self.resync()
                async for event in events:
                    await self.deliver(event)
            except BusUnavailable as exc:
                logger.warning("Update channel lost, resubscribing: %s", exc)
            await asyncio.sleep(self._delay)

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
