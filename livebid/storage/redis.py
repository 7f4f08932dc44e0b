"""Redis state store using the redis-py asyncio client.

Every multi-step mutation runs as a server-side Lua script so that replicas
never race between a read and the write that depends on it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..auction.models import AuctionField, AuctionState
from ..errors import StoreUnavailable
from .fields import encode_value, parse_bool, parse_int, state_from_values

# KEYS: price, bidder, [running], [time]
# ARGV: amount, bidder, guard running ("1"/"0"), extend time ("1"/"0"), threshold, extension
BID_SCRIPT = """
local next_key = 3
if ARGV[3] == "1" then
    if redis.call("GET", KEYS[next_key]) ~= "1" then
        return 0
    end
    next_key = next_key + 1
end
local current = tonumber(redis.call("GET", KEYS[1]) or "0") or 0
local bid = tonumber(ARGV[1])
if bid <= current then
    return 0
end
redis.call("SET", KEYS[1], ARGV[1])
redis.call("SET", KEYS[2], ARGV[2])
if ARGV[4] == "1" then
    local time_left = tonumber(redis.call("GET", KEYS[next_key]) or "0") or 0
    if time_left < tonumber(ARGV[5]) then
        redis.call("INCRBY", KEYS[next_key], ARGV[6])
    end
end
return 1
"""

# KEYS: time, running
GUARDED_DECR_SCRIPT = """
if redis.call("GET", KEYS[2]) ~= "1" then
    return tonumber(redis.call("GET", KEYS[1]) or "0") or 0
end
return redis.call("DECR", KEYS[1])
"""

# KEYS: running, time
EXPIRE_SCRIPT = """
if redis.call("GET", KEYS[1]) ~= "1" then
    return 0
end
local time_left = tonumber(redis.call("GET", KEYS[2]) or "0") or 0
if time_left > 0 then
    return 0
end
redis.call("SET", KEYS[1], "0")
redis.call("SET", KEYS[2], "0")
return 1
"""


class RedisStateStore:
    def __init__(
        self,
        *,
        url: str | None = None,
        prefix: str = "auction",
        client: aioredis.Redis | None = None,
    ) -> None:
        if client is None:
            if not url:
                raise ValueError("redis url missing")
            client = aioredis.from_url(url, decode_responses=True)
        self._redis = client
        self._prefix = prefix.rstrip(":")
        self._bid_script = self._redis.register_script(BID_SCRIPT)
        self._decr_script = self._redis.register_script(GUARDED_DECR_SCRIPT)
        self._expire_script = self._redis.register_script(EXPIRE_SCRIPT)

    def _key(self, field: AuctionField) -> str:
        return f"{self._prefix}:{field.value}"

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
            raise StoreUnavailable(f"redis state store unreachable: {exc}") from exc

    async def ping(self) -> None:
        with self._translate_errors():
            await self._redis.ping()

    async def get(self, field: AuctionField) -> str | None:
        with self._translate_errors():
            return await self._redis.get(self._key(field))

    async def get_int(self, field: AuctionField) -> int:
        return parse_int(await self.get(field))

    async def get_str(self, field: AuctionField) -> str:
        return await self.get(field) or ""

    async def get_bool(self, field: AuctionField) -> bool:
        return parse_bool(await self.get(field))

    async def set(self, field: AuctionField, value: Any) -> None:
        with self._translate_errors():
            await self._redis.set(self._key(field), encode_value(value))

    async def set_many(self, values: Mapping[AuctionField, Any]) -> None:
        mapping = {self._key(field): encode_value(value) for field, value in values.items()}
        with self._translate_errors():
            await self._redis.mset(mapping)

    async def decrement_and_get(
        self, field: AuctionField, *, running_field: AuctionField | None = None
    ) -> int:
        with self._translate_errors():
            if running_field is None:
                return int(await self._redis.decr(self._key(field)))
            result = await self._decr_script(
                keys=[self._key(field), self._key(running_field)], args=[]
            )
        return int(result)

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
        keys = [self._key(price_field), self._key(bidder_field)]
        if running_field is not None:
            keys.append(self._key(running_field))
        if time_field is not None:
            keys.append(self._key(time_field))
        args = [
            int(new_price),
            new_bidder,
            encode_value(running_field is not None),
            encode_value(time_field is not None),
            int(snipe_threshold),
            int(snipe_extension),
        ]
        with self._translate_errors():
            result = await self._bid_script(keys=keys, args=args)
        return int(result) == 1

    async def expire(self, running_field: AuctionField, time_field: AuctionField) -> bool:
        with self._translate_errors():
            result = await self._expire_script(
                keys=[self._key(running_field), self._key(time_field)], args=[]
            )
        return int(result) == 1

    async def snapshot(self) -> AuctionState:
        fields = list(AuctionField)
        with self._translate_errors():
            values = await self._redis.mget([self._key(field) for field in fields])
        return state_from_values(dict(zip(fields, values)))

    async def close(self) -> None:
        await self._redis.aclose()
