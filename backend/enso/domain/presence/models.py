"""Presence domain models and their Redis hash encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(slots=True, frozen=True)
class Cursor:
	x: float
	y: float


@dataclass(slots=True)
class PresenceRecord:
	"""Ephemeral location/liveness state for one user."""

	user_id: str
	session_id: str
	location: str
	location_id: str
	last_seen: int
	cursor: Optional[Cursor] = None

	@property
	def id(self) -> str:
		return self.session_id

	def age_ms(self, now_ms: int) -> int:
		return now_ms - self.last_seen

	def is_active(self, now_ms: int, active_window_ms: int) -> bool:
		return self.age_ms(now_ms) < active_window_ms

	def is_expired(self, now_ms: int, cleanup_window_ms: int) -> bool:
		return self.age_ms(now_ms) >= cleanup_window_ms

	def to_mapping(self) -> dict[str, str]:
		mapping = {
			"user_id": self.user_id,
			"session_id": self.session_id,
			"location": self.location,
			"location_id": self.location_id,
			"last_seen": str(self.last_seen),
			"cursor_x": "",
			"cursor_y": "",
		}
		if self.cursor is not None:
			mapping["cursor_x"] = repr(float(self.cursor.x))
			mapping["cursor_y"] = repr(float(self.cursor.y))
		return mapping

	@classmethod
	def from_mapping(cls, data: Mapping[str, str]) -> Optional["PresenceRecord"]:
		"""Decode a stored hash; None when the hash is missing or partial."""
		if not data or not data.get("user_id") or not data.get("last_seen"):
			return None
		try:
			last_seen = int(data["last_seen"])
		except (TypeError, ValueError):
			return None
		cursor: Optional[Cursor] = None
		if data.get("cursor_x") and data.get("cursor_y"):
			try:
				cursor = Cursor(x=float(data["cursor_x"]), y=float(data["cursor_y"]))
			except ValueError:
				cursor = None
		return cls(
			user_id=data["user_id"],
			session_id=data.get("session_id") or f"{data['user_id']}-{last_seen}",
			location=data.get("location", ""),
			location_id=data.get("location_id", ""),
			last_seen=last_seen,
			cursor=cursor,
		)


@dataclass(slots=True, frozen=True)
class UserProfile:
	"""Public profile fields joined onto presence listings."""

	id: str
	display_name: Optional[str] = None
	handle: Optional[str] = None
	avatar_url: Optional[str] = None


@dataclass(slots=True)
class PresenceView:
	record: PresenceRecord
	user: UserProfile
