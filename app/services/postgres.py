from __future__ import annotations

from dataclasses import dataclass

import asyncpg


@dataclass(slots=True)
class PostgresPool:
    """Lazily created asyncpg pool shared by the repositories."""

    dsn: str
    min_size: int = 1
    max_size: int = 5
    _pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self.dsn, min_size=self.min_size, max_size=self.max_size)
        return self._pool

    async def test_connection(self) -> bool:
        pool = await self.get_pool()
        async with pool.acquire() as connection:
            await connection.execute("SELECT 1")
        return True

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
