import pytest
from prometheus_client import REGISTRY

from enso.domain.presence import keys
from enso.domain.presence.exceptions import Unauthenticated, UserNotFound
from enso.domain.presence.models import Cursor
from enso.domain.presence.service import PresenceService
from enso.infra.auth import AuthenticatedUser

U1 = AuthenticatedUser(id="u1")
U2 = AuthenticatedUser(id="u2")
U3 = AuthenticatedUser(id="u3")


@pytest.mark.asyncio
async def test_update_creates_record_with_session_id(presence_service, fake_redis, clock):
	record_id = await presence_service.update(U1, "chat", "c1", Cursor(x=1.5, y=2))

	assert record_id == f"u1-{clock.now}"
	stored = await fake_redis.hgetall(keys.user_key("u1"))
	assert stored["location"] == "chat"
	assert stored["location_id"] == "c1"
	assert stored["last_seen"] == str(clock.now)
	assert float(stored["cursor_x"]) == 1.5
	assert await fake_redis.sismember(keys.location_key("chat", "c1"), "u1")


@pytest.mark.asyncio
async def test_second_update_overwrites_single_record(presence_service, fake_redis, clock):
	first_id = await presence_service.update(U1, "chat", "c1")
	clock.advance(1_000)
	second_id = await presence_service.update(U1, "chat", "c2")

	assert second_id == first_id
	user_keys = await fake_redis.keys("presence:user:*")
	assert user_keys == [keys.user_key("u1")]
	assert (await fake_redis.hgetall(keys.user_key("u1")))["location_id"] == "c2"
	assert await presence_service.list_by_location(U2, "chat", "c1") == []
	views = await presence_service.list_by_location(U2, "chat", "c2")
	assert [view.record.user_id for view in views] == ["u1"]
	assert not await fake_redis.sismember(keys.location_key("chat", "c1"), "u1")


@pytest.mark.asyncio
async def test_update_without_cursor_clears_previous_cursor(presence_service):
	await presence_service.update(U1, "board", "b1", Cursor(x=10, y=20))
	await presence_service.update(U1, "board", "b1")

	views = await presence_service.list_by_location(U1, "board", "b1")
	assert views[0].record.cursor is None


@pytest.mark.asyncio
async def test_unauthenticated_update_writes_nothing(presence_service, fake_redis):
	with pytest.raises(Unauthenticated):
		await presence_service.update(None, "chat", "c1")

	assert await fake_redis.keys("presence:*") == []


@pytest.mark.asyncio
async def test_unauthenticated_heartbeat_and_remove_raise(presence_service):
	with pytest.raises(Unauthenticated):
		await presence_service.heartbeat(None)
	with pytest.raises(Unauthenticated):
		await presence_service.remove(None)


@pytest.mark.asyncio
async def test_update_for_unknown_user_is_rejected(presence_service, fake_redis):
	with pytest.raises(UserNotFound):
		await presence_service.update(AuthenticatedUser(id="ghost"), "chat", "c1")

	assert await fake_redis.keys("presence:*") == []


@pytest.mark.asyncio
async def test_active_window_boundaries(presence_service, clock):
	await presence_service.update(U1, "chat", "c1")

	clock.advance(25_000)
	assert len(await presence_service.list_by_location(U2, "chat", "c1")) == 1

	clock.advance(10_000)
	assert await presence_service.list_by_location(U2, "chat", "c1") == []


@pytest.mark.asyncio
async def test_heartbeat_keeps_record_active(presence_service, fake_redis, clock):
	await presence_service.update(U1, "chat", "c1")
	clock.advance(20_000)
	assert await presence_service.heartbeat(U1) is True
	clock.advance(20_000)

	views = await presence_service.list_by_location(U2, "chat", "c1")
	assert [view.record.user_id for view in views] == ["u1"]
	stored = await fake_redis.hgetall(keys.user_key("u1"))
	assert stored["location_id"] == "c1"


@pytest.mark.asyncio
async def test_heartbeat_without_record_is_noop(presence_service, fake_redis):
	assert await presence_service.heartbeat(U1) is False
	assert await fake_redis.keys("presence:*") == []


@pytest.mark.asyncio
async def test_remove_deletes_and_is_idempotent(presence_service, fake_redis):
	await presence_service.update(U1, "chat", "c1")

	assert await presence_service.remove(U1) is True
	assert await presence_service.remove(U1) is False
	assert await fake_redis.exists(keys.user_key("u1")) == 0
	assert await fake_redis.zscore(keys.SEEN_INDEX, "u1") is None
	assert await presence_service.list_by_location(U2, "chat", "c1") == []


@pytest.mark.asyncio
async def test_anonymous_listing_is_empty(presence_service):
	await presence_service.update(U1, "chat", "c1")

	assert await presence_service.list_by_location(None, "chat", "c1") == []


@pytest.mark.asyncio
async def test_listing_drops_users_without_profile(presence_service, directory, clock):
	await presence_service.update(U1, "chat", "c1")
	clock.advance(1_000)
	await presence_service.update(U2, "chat", "c1")
	directory.drop("u1")

	views = await presence_service.list_by_location(U3, "chat", "c1")

	assert [view.record.user_id for view in views] == ["u2"]
	assert views[0].user.display_name == "User u2"


@pytest.mark.asyncio
async def test_listing_orders_most_recent_first(presence_service, clock):
	await presence_service.update(U1, "chat", "c1")
	clock.advance(1_000)
	await presence_service.update(U2, "chat", "c1")

	views = await presence_service.list_by_location(U3, "chat", "c1")

	assert [view.record.user_id for view in views] == ["u2", "u1"]


@pytest.mark.asyncio
async def test_cleanup_only_deletes_past_cleanup_window(presence_service, fake_redis, clock):
	await presence_service.update(U1, "chat", "c1")
	clock.advance(20_000)
	await presence_service.update(U2, "chat", "c1")
	clock.advance(45_000)

	# u1 is 65s old, u2 is 45s old: u2 is neither active nor removable yet
	assert await presence_service.list_by_location(U3, "chat", "c1") == []
	assert await presence_service.cleanup() == 1

	assert await fake_redis.exists(keys.user_key("u1")) == 0
	assert await fake_redis.exists(keys.user_key("u2")) == 1
	assert not await fake_redis.sismember(keys.location_key("chat", "c1"), "u1")


@pytest.mark.asyncio
async def test_cleanup_removes_partial_hashes(presence_service, fake_redis):
	await fake_redis.hset(keys.user_key("ghost"), mapping={"last_seen": "1"})

	assert await presence_service.cleanup() == 0
	assert await fake_redis.exists(keys.user_key("ghost")) == 0


@pytest.mark.asyncio
async def test_active_users_count(presence_service, clock):
	await presence_service.update(U1, "chat", "c1")
	clock.advance(31_000)
	await presence_service.update(U2, "board", "b1")
	await presence_service.update(U3, "chat", "c1")

	assert await presence_service.active_users_count() == 2


@pytest.mark.asyncio
async def test_notifier_sees_both_locations_on_move(presence_service):
	calls = []

	async def _notify(location, location_id):
		calls.append((location, location_id))

	presence_service.set_notifier(_notify)
	await presence_service.update(U1, "chat", "c1")
	await presence_service.update(U1, "chat", "c2")
	await presence_service.remove(U1)

	assert calls == [("chat", "c1"), ("chat", "c1"), ("chat", "c2"), ("chat", "c2")]


@pytest.mark.asyncio
async def test_notifier_failure_does_not_break_update(presence_service):
	async def _broken(location, location_id):
		raise RuntimeError("socket down")

	presence_service.set_notifier(_broken)

	assert await presence_service.update(U1, "chat", "c1")


def test_windows_must_be_ordered(directory):
	with pytest.raises(ValueError):
		PresenceService(object(), directory, active_window_ms=60_000, cleanup_window_ms=30_000)


def _interleave_once(service, action):
	"""Run ``action`` right after the service's next watched read."""
	original = service._read_watched
	state = {"done": False}

	async def _wrapped(pipe, key):
		record = await original(pipe, key)
		if not state["done"]:
			state["done"] = True
			await action()
		return record

	service._read_watched = _wrapped


@pytest.mark.asyncio
async def test_listing_keeps_index_entry_of_user_who_came_back(presence_service, fake_redis):
	await presence_service.update(U1, "chat", "c2")
	# Stale entry left behind in the old location's index.
	await fake_redis.sadd(keys.location_key("chat", "c1"), "u1")

	_interleave_once(presence_service, lambda: presence_service.update(U1, "chat", "c1"))
	await presence_service.list_by_location(U2, "chat", "c1")

	assert await fake_redis.sismember(keys.location_key("chat", "c1"), "u1")
	views = await presence_service.list_by_location(U2, "chat", "c1")
	assert [view.record.user_id for view in views] == ["u1"]


@pytest.mark.asyncio
async def test_listing_still_prunes_users_who_left(presence_service, fake_redis):
	await presence_service.update(U1, "chat", "c2")
	await fake_redis.sadd(keys.location_key("chat", "c1"), "u1")

	assert await presence_service.list_by_location(U2, "chat", "c1") == []
	assert not await fake_redis.sismember(keys.location_key("chat", "c1"), "u1")


@pytest.mark.asyncio
async def test_heartbeat_restores_missing_index_entry(presence_service, fake_redis):
	await presence_service.update(U1, "chat", "c1")
	await fake_redis.srem(keys.location_key("chat", "c1"), "u1")

	assert await presence_service.heartbeat(U1) is True

	views = await presence_service.list_by_location(U2, "chat", "c1")
	assert [view.record.user_id for view in views] == ["u1"]


@pytest.mark.asyncio
async def test_heartbeat_racing_remove_does_not_resurrect(presence_service, fake_redis):
	await presence_service.update(U1, "chat", "c1")

	_interleave_once(presence_service, lambda: presence_service.remove(U1))
	assert await presence_service.heartbeat(U1) is False

	assert await fake_redis.exists(keys.user_key("u1")) == 0
	assert await fake_redis.zscore(keys.SEEN_INDEX, "u1") is None
	assert await presence_service.active_users_count() == 0


def _presence_series() -> int:
	return sum(
		len(metric.samples)
		for metric in REGISTRY.collect()
		if metric.name.startswith("enso_presence")
	)


@pytest.mark.asyncio
async def test_metrics_do_not_grow_with_locations(presence_service):
	await presence_service.update(U1, "warmup", "w1")
	await presence_service.update(U1, "warmup", "w1")
	await presence_service.list_by_location(U1, "warmup", "w1")
	before = _presence_series()

	for index in range(50):
		await presence_service.update(U1, f"loc-{index}", "x")
		await presence_service.list_by_location(U1, f"loc-{index}", "x")

	assert _presence_series() == before
