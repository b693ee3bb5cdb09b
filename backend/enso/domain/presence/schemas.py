"""Pydantic schemas for the presence API and socket payloads."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from enso.domain.presence.models import Cursor, PresenceView


class CursorIn(BaseModel):
	x: float
	y: float

	def to_domain(self) -> Cursor:
		return Cursor(x=self.x, y=self.y)


class PresenceUpdateRequest(BaseModel):
	location: str = Field(min_length=1, max_length=64)
	location_id: str = Field(min_length=1, max_length=128)
	cursor: Optional[CursorIn] = None


class PresenceUpdateResponse(BaseModel):
	id: str


class OkResponse(BaseModel):
	ok: bool


class PresenceRecordOut(BaseModel):
	id: str
	user_id: str
	session_id: str
	location: str
	location_id: str
	cursor: Optional[CursorIn] = None
	last_seen: int


class UserProfileOut(BaseModel):
	id: str
	display_name: Optional[str] = None
	handle: Optional[str] = None
	avatar_url: Optional[str] = None


class PresenceEntry(BaseModel):
	record: PresenceRecordOut
	user: UserProfileOut

	@classmethod
	def from_view(cls, view: PresenceView) -> "PresenceEntry":
		record = view.record
		cursor = CursorIn(x=record.cursor.x, y=record.cursor.y) if record.cursor else None
		return cls(
			record=PresenceRecordOut(
				id=record.id,
				user_id=record.user_id,
				session_id=record.session_id,
				location=record.location,
				location_id=record.location_id,
				cursor=cursor,
				last_seen=record.last_seen,
			),
			user=UserProfileOut(
				id=view.user.id,
				display_name=view.user.display_name,
				handle=view.user.handle,
				avatar_url=view.user.avatar_url,
			),
		)


class PresenceListResponse(BaseModel):
	location: str
	location_id: str
	items: List[PresenceEntry]

	@classmethod
	def from_views(cls, location: str, location_id: str, views: List[PresenceView]) -> "PresenceListResponse":
		return cls(
			location=location,
			location_id=location_id,
			items=[PresenceEntry.from_view(view) for view in views],
		)


class ActiveCountResponse(BaseModel):
	count: int


class CleanupResponse(BaseModel):
	deleted: int


class WatchRequest(BaseModel):
	location: str = Field(min_length=1, max_length=64)
	location_id: str = Field(min_length=1, max_length=128)
