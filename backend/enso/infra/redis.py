"""Redis connection management.

The client is created by the application lifespan and handed to the services
that need it; nothing in the package holds a module-level connection.
"""

from __future__ import annotations

import redis.asyncio as redis

from enso.settings import settings


def create_redis_client(url: str | None = None) -> redis.Redis:
	"""Build an asyncio Redis client that decodes responses to str."""
	return redis.from_url(url or settings.redis_url, decode_responses=True)


async def close_redis_client(client: redis.Redis) -> None:
	await client.aclose()
