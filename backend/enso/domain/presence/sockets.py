"""Socket.IO namespace pushing presence snapshots to location watchers."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import socketio
from fastapi import HTTPException
from pydantic import ValidationError

from enso.domain.presence.schemas import PresenceListResponse, WatchRequest
from enso.domain.presence.service import PresenceService
from enso.infra.auth import AuthenticatedUser, verify_access_jwt
from enso.settings import settings

logger = logging.getLogger(__name__)


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def location_room(location: str, location_id: str) -> str:
	return f"presence:{location}:{location_id}"


class PresenceNamespace(socketio.AsyncNamespace):
	"""Clients watch a location and receive ``presence.snapshot`` on every change."""

	def __init__(self, service: Optional[PresenceService] = None) -> None:
		super().__init__("/presence")
		self.service = service
		self.users: Dict[str, AuthenticatedUser] = {}

	def bind_service(self, service: Optional[PresenceService]) -> None:
		self.service = service

	def _authorise(self, environ: dict, auth: Optional[dict]) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		token = (auth or {}).get("token")
		if not token:
			header = _header(scope, "authorization") or ""
			if header.lower().startswith("bearer "):
				token = header[7:].strip()
		if token:
			try:
				return verify_access_jwt(token)
			except HTTPException:
				raise ConnectionRefusedError("unauthorized") from None
		user_id = (auth or {}).get("userId") or _header(scope, "x-user-id")
		if settings.is_dev() and user_id:
			return AuthenticatedUser(id=str(user_id))
		raise ConnectionRefusedError("unauthorized")

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = self._authorise(environ, auth)
		self.users[sid] = user
		logger.info("presence socket connect sid=%s user=%s", sid, user.id)
		await self.emit("sys.ok", {"me": {"id": user.id}}, room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		user = self.users.pop(sid, None)
		if user is not None:
			logger.info("presence socket disconnect sid=%s user=%s", sid, user.id)

	async def on_presence_watch(self, sid: str, data: dict) -> None:
		if sid not in self.users:
			await self.emit("presence.error", {"detail": "unauthenticated"}, room=sid)
			return
		if self.service is None:
			await self.emit("presence.error", {"detail": "presence_unavailable"}, room=sid)
			return
		try:
			request = WatchRequest.model_validate(data or {})
		except ValidationError:
			await self.emit("presence.error", {"detail": "invalid_payload"}, room=sid)
			return
		await self.enter_room(sid, location_room(request.location, request.location_id))
		views = await self.service.snapshot(request.location, request.location_id)
		payload = PresenceListResponse.from_views(request.location, request.location_id, views)
		await self.emit("presence.snapshot", payload.model_dump(), room=sid)

	async def on_presence_unwatch(self, sid: str, data: dict) -> None:
		try:
			request = WatchRequest.model_validate(data or {})
		except ValidationError:
			return
		await self.leave_room(sid, location_room(request.location, request.location_id))

	async def broadcast(self, location: str, location_id: str) -> None:
		"""Emit the current snapshot of a location to everyone watching it."""
		if self.service is None:
			return
		views = await self.service.snapshot(location, location_id)
		payload = PresenceListResponse.from_views(location, location_id, views)
		await self.emit("presence.snapshot", payload.model_dump(), room=location_room(location, location_id))


__all__ = ["PresenceNamespace", "location_room"]
