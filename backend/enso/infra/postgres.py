"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncpg

from enso.settings import settings


async def create_pool(dsn: str | None = None) -> asyncpg.pool.Pool:
	# Force 127.0.0.1 instead of localhost to avoid IPv6 issues on Windows
	target = (dsn or settings.postgres_url).replace("localhost", "127.0.0.1")
	return await asyncpg.create_pool(
		dsn=target,
		min_size=0,
		max_size=settings.postgres_max_pool_size,
	)


async def close_pool(pool: asyncpg.pool.Pool | None) -> None:
	if pool is not None:
		await pool.close()
