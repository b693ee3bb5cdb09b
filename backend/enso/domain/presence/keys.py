"""Redis key helpers for presence."""

from __future__ import annotations

USER_KEY = "presence:user:{user_id}"
LOCATION_KEY = "presence:loc:{location}:{location_id}"
# sorted set: member=user_id, score=last_seen (epoch ms)
SEEN_INDEX = "presence:seen"


def user_key(user_id: str) -> str:
	return USER_KEY.format(user_id=user_id)


def location_key(location: str, location_id: str) -> str:
	return LOCATION_KEY.format(location=location, location_id=location_id)
