"""Postgres bid history sink leveraging asyncpg."""

from __future__ import annotations

from typing import Any

import asyncpg

from ..errors import PersistenceFailure


class PostgresBidSink:
    def __init__(self, *, dsn: str | None = None, **connect_kwargs: Any) -> None:
        if not dsn and not connect_kwargs:
            raise ValueError("postgres connection details missing")
        self._dsn = dsn
        self._connect_kwargs = connect_kwargs
        self._pool: asyncpg.Pool | None = None

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(dsn=self._dsn, **self._connect_kwargs)
            except (OSError, asyncpg.PostgresError) as exc:
                raise PersistenceFailure(f"cannot connect to postgres: {exc}") from exc
            async with self._pool.acquire() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bids (
                        id SERIAL PRIMARY KEY,
                        item_name VARCHAR(255) NOT NULL,
                        bidder_name VARCHAR(255) NOT NULL,
                        amount INTEGER NOT NULL,
                        created_at TIMESTAMPTZ DEFAULT NOW()
                    );
                    """
                )
        return self._pool

    def _row_to_bid(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "item_name": row["item_name"],
            "bidder": row["bidder_name"],
            "amount": row["amount"],
            "created_at": row["created_at"].isoformat(),
        }

    async def record_bid(self, item_name: str, bidder: str, amount: int) -> dict[str, Any]:
        pool = await self._ensure_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    """INSERT INTO bids(item_name, bidder_name, amount) VALUES($1, $2, $3)
                       RETURNING item_name, bidder_name, amount, created_at""",
                    item_name,
                    bidder,
                    amount,
                )
        except (OSError, asyncpg.PostgresError) as exc:
            raise PersistenceFailure(f"failed to save bid: {exc}") from exc
        return self._row_to_bid(row)

    async def list_bids(self, item_name: str | None = None) -> list[dict[str, Any]]:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            if item_name is None:
                rows = await conn.fetch(
                    "SELECT item_name, bidder_name, amount, created_at FROM bids ORDER BY id"
                )
            else:
                rows = await conn.fetch(
                    """SELECT item_name, bidder_name, amount, created_at FROM bids
                       WHERE item_name=$1 ORDER BY id""",
                    item_name,
                )
        return [self._row_to_bid(row) for row in rows]

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
