"""Presence tracking for "who's here" listings.

One Redis hash per user holds the current record; a set per location indexes
the users last seen there and a sorted set scores every user by ``last_seen``.
Records are keyed by user, so a second session of the same user overwrites the
first one's location and cursor (last writer wins).

Two windows apply at different times:

* a record is listed as a viewer while ``now - last_seen < active_window_ms``;
* the sweeper deletes it once ``now - last_seen >= cleanup_window_ms``.

Between the two a record is neither listed nor deleted.
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from enso.domain.presence import keys
from enso.domain.presence.exceptions import Unauthenticated, UserNotFound
from enso.domain.presence.models import Cursor, PresenceRecord, PresenceView
from enso.domain.presence.profiles import UserDirectory
from enso.infra.auth import AuthenticatedUser
from enso.obs import metrics as obs_metrics
from enso.settings import settings

logger = logging.getLogger(__name__)

PresenceNotifier = Callable[[str, str], Awaitable[None]]

_SCAN_MATCH = keys.USER_KEY.format(user_id="*")
_SCAN_COUNT = 200


def _now_ms() -> int:
	return int(time.time() * 1000)


class PresenceService:
	"""Upsert, refresh, list and sweep presence records."""

	def __init__(
		self,
		redis_client: redis.Redis,
		directory: UserDirectory,
		*,
		active_window_ms: int | None = None,
		cleanup_window_ms: int | None = None,
		clock: Callable[[], int] | None = None,
		notifier: PresenceNotifier | None = None,
	) -> None:
		self._redis = redis_client
		self._directory = directory
		self.active_window_ms = int(active_window_ms or settings.presence_active_window_ms)
		self.cleanup_window_ms = int(cleanup_window_ms or settings.presence_cleanup_window_ms)
		if self.cleanup_window_ms < self.active_window_ms:
			raise ValueError("cleanup window must not be shorter than the active window")
		self._clock = clock or _now_ms
		self._notifier = notifier

	def set_notifier(self, notifier: PresenceNotifier | None) -> None:
		self._notifier = notifier

	@staticmethod
	def _require_user(user: Optional[AuthenticatedUser], action: str) -> str:
		if user is None or not user.id:
			obs_metrics.inc_presence_reject("unauthenticated")
			logger.info("presence.%s.unauthenticated", action)
			raise Unauthenticated()
		return user.id

	async def _load(self, user_id: str) -> Optional[PresenceRecord]:
		return PresenceRecord.from_mapping(await self._redis.hgetall(keys.user_key(user_id)))

	async def update(
		self,
		user: Optional[AuthenticatedUser],
		location: str,
		location_id: str,
		cursor: Optional[Cursor] = None,
	) -> str:
		"""Create or overwrite the caller's record and return its id."""
		user_id = self._require_user(user, "update")
		profiles = await self._directory.get_profiles([user_id])
		if user_id not in profiles:
			obs_metrics.inc_presence_reject("user_not_found")
			raise UserNotFound()

		now = self._clock()
		existing = await self._load(user_id)
		record = PresenceRecord(
			user_id=user_id,
			session_id=existing.session_id if existing else f"{user_id}-{now}",
			location=location,
			location_id=location_id,
			last_seen=now,
			cursor=cursor,
		)
		moved_from: Optional[tuple[str, str]] = None
		if existing and (existing.location, existing.location_id) != (location, location_id):
			moved_from = (existing.location, existing.location_id)

		async with self._redis.pipeline(transaction=True) as pipe:
			if moved_from is not None:
				pipe.srem(keys.location_key(*moved_from), user_id)
			pipe.hset(keys.user_key(user_id), mapping=record.to_mapping())
			pipe.sadd(keys.location_key(location, location_id), user_id)
			pipe.zadd(keys.SEEN_INDEX, {user_id: now})
			await pipe.execute()

		obs_metrics.inc_presence_update(created=existing is None)
		logger.debug(
			"presence.update user=%s location=%s:%s created=%s",
			user_id,
			location,
			location_id,
			existing is None,
		)
		if moved_from is not None:
			await self._notify(*moved_from)
		await self._notify(location, location_id)
		return record.id

	async def heartbeat(self, user: Optional[AuthenticatedUser]) -> bool:
		"""Refresh ``last_seen``. Returns False (no-op) when there is no record."""
		user_id = self._require_user(user, "heartbeat")
		key = keys.user_key(user_id)
		async with self._redis.pipeline(transaction=True) as pipe:
			try:
				record = await self._read_watched(pipe, key)
				if record is None:
					obs_metrics.inc_presence_heartbeat("missing")
					return False
				now = self._clock()
				pipe.multi()
				pipe.hset(key, "last_seen", str(now))
				pipe.zadd(keys.SEEN_INDEX, {user_id: now})
				# Re-adds an index entry a concurrent listing may have pruned.
				pipe.sadd(keys.location_key(record.location, record.location_id), user_id)
				await pipe.execute()
			except WatchError:
				# A concurrent update already refreshed the record; a removal deleted it.
				obs_metrics.inc_presence_heartbeat("raced")
				return bool(await self._redis.exists(key))
		obs_metrics.inc_presence_heartbeat("ok")
		return True

	async def remove(self, user: Optional[AuthenticatedUser]) -> bool:
		"""Delete the caller's record. Returns False (no-op) when there is none."""
		user_id = self._require_user(user, "remove")
		existing = await self._load(user_id)
		if existing is None:
			obs_metrics.inc_presence_removal("missing")
			return False
		async with self._redis.pipeline(transaction=True) as pipe:
			pipe.delete(keys.user_key(user_id))
			pipe.srem(keys.location_key(existing.location, existing.location_id), user_id)
			pipe.zrem(keys.SEEN_INDEX, user_id)
			await pipe.execute()
		obs_metrics.inc_presence_removal("ok")
		await self._notify(existing.location, existing.location_id)
		return True

	async def list_by_location(
		self,
		user: Optional[AuthenticatedUser],
		location: str,
		location_id: str,
	) -> list[PresenceView]:
		"""Active viewers of a location; anonymous callers get an empty list."""
		if user is None:
			return []
		return await self.snapshot(location, location_id)

	async def snapshot(self, location: str, location_id: str) -> list[PresenceView]:
		"""Active viewers joined with their profiles, most recently seen first."""
		now = self._clock()
		index_key = keys.location_key(location, location_id)
		members = sorted(await self._redis.smembers(index_key))
		if not members:
			obs_metrics.observe_presence_listing(0)
			return []

		async with self._redis.pipeline(transaction=False) as pipe:
			for member in members:
				pipe.hgetall(keys.user_key(member))
			raw_records = await pipe.execute()

		active: list[PresenceRecord] = []
		departed: list[str] = []
		for member, data in zip(members, raw_records):
			record = PresenceRecord.from_mapping(data)
			if record is None or (record.location, record.location_id) != (location, location_id):
				departed.append(member)
				continue
			if record.is_active(now, self.active_window_ms):
				active.append(record)
		for member in departed:
			await self._prune_departed(index_key, member, location, location_id)

		profiles = await self._directory.get_profiles(record.user_id for record in active) if active else {}
		views = [
			PresenceView(record=record, user=profiles[record.user_id])
			for record in active
			if record.user_id in profiles
		]
		views.sort(key=lambda view: (-view.record.last_seen, view.record.user_id))
		obs_metrics.observe_presence_listing(len(views))
		return views

	async def active_users_count(self) -> int:
		"""Distinct users whose record is inside the active window."""
		floor = self._clock() - self.active_window_ms
		return int(await self._redis.zcount(keys.SEEN_INDEX, f"({floor}", "+inf"))

	async def cleanup(self) -> int:
		"""Delete every record at or past the cleanup window; return the count."""
		now = self._clock()
		deleted = 0
		touched: set[tuple[str, str]] = set()
		cursor = 0
		while True:
			cursor, found = await self._redis.scan(cursor=cursor, match=_SCAN_MATCH, count=_SCAN_COUNT)
			for key in found:
				record = await self._delete_if_expired(key, now)
				if record is not None:
					deleted += 1
					touched.add((record.location, record.location_id))
			if cursor == 0:
				break
		# Index entries whose hash vanished without a removal.
		await self._redis.zremrangebyscore(keys.SEEN_INDEX, "-inf", now - self.cleanup_window_ms)

		if deleted:
			logger.info("presence cleanup removed %s stale records", deleted)
			obs_metrics.PRESENCE_CLEANUP_DELETES.inc(deleted)
		for location, location_id in sorted(touched):
			await self._notify(location, location_id)
		return deleted

	@staticmethod
	async def _read_watched(pipe, key: str) -> Optional[PresenceRecord]:
		"""WATCH ``key`` on ``pipe`` and decode its current hash."""
		await pipe.watch(key)
		return PresenceRecord.from_mapping(await pipe.hgetall(key))

	async def _prune_departed(self, index_key: str, user_id: str, location: str, location_id: str) -> None:
		"""Drop ``user_id`` from a location index unless its record is back there."""
		async with self._redis.pipeline(transaction=True) as pipe:
			try:
				record = await self._read_watched(pipe, keys.user_key(user_id))
				if record is not None and (record.location, record.location_id) == (location, location_id):
					return
				pipe.multi()
				pipe.srem(index_key, user_id)
				await pipe.execute()
			except WatchError:
				# The record changed since it was read; leave the index to its writer.
				return

	async def _delete_if_expired(self, key: str, now: int) -> Optional[PresenceRecord]:
		async with self._redis.pipeline(transaction=True) as pipe:
			try:
				record = await self._read_watched(pipe, key)
				if record is None:
					# Partial hash left behind by a heartbeat racing a removal.
					pipe.multi()
					pipe.delete(key)
					await pipe.execute()
					return None
				if not record.is_expired(now, self.cleanup_window_ms):
					return None
				pipe.multi()
				pipe.delete(key)
				pipe.srem(keys.location_key(record.location, record.location_id), record.user_id)
				pipe.zrem(keys.SEEN_INDEX, record.user_id)
				await pipe.execute()
			except WatchError:
				# Refreshed by a heartbeat while we were looking at it.
				return None
		return record

	async def _notify(self, location: str, location_id: str) -> None:
		if self._notifier is None:
			return
		try:
			await self._notifier(location, location_id)
		except Exception:
			logger.exception("presence notify failed for location=%s:%s", location, location_id)


__all__ = ["PresenceService", "PresenceNotifier"]
