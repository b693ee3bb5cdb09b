"""User profile lookups backing presence listings."""

from __future__ import annotations

from typing import Iterable, Protocol

import asyncpg

from enso.domain.presence.models import UserProfile


class UserDirectory(Protocol):
	async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
		"""Return profiles keyed by id; unknown ids are absent from the result."""
		...


class PostgresUserDirectory:
	"""Read public profile fields from the ``users`` table."""

	def __init__(self, pool: asyncpg.pool.Pool) -> None:
		self._pool = pool

	async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
		ids = sorted({str(user_id) for user_id in user_ids if user_id})
		if not ids:
			return {}
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id::text AS id, display_name, handle, avatar_url
				FROM users
				WHERE id::text = ANY($1::text[]) AND deleted_at IS NULL
				""",
				ids,
			)
		return {
			row["id"]: UserProfile(
				id=row["id"],
				display_name=row["display_name"],
				handle=row["handle"],
				avatar_url=row["avatar_url"],
			)
			for row in rows
		}


__all__ = ["PostgresUserDirectory", "UserDirectory"]
