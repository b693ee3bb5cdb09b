"""Presence upsert, heartbeat, removal and lookup endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from enso.api.deps import get_presence_service
from enso.api.errors import to_http_error
from enso.domain.presence.exceptions import PresenceError
from enso.domain.presence.schemas import (
	ActiveCountResponse,
	CleanupResponse,
	OkResponse,
	PresenceListResponse,
	PresenceUpdateRequest,
	PresenceUpdateResponse,
)
from enso.domain.presence.service import PresenceService
from enso.infra.auth import AuthenticatedUser, get_optional_user, require_roles

router = APIRouter(prefix="/presence", tags=["presence"])


@router.post("", response_model=PresenceUpdateResponse)
async def presence_update_endpoint(
	payload: PresenceUpdateRequest,
	service: PresenceService = Depends(get_presence_service),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> PresenceUpdateResponse:
	cursor = payload.cursor.to_domain() if payload.cursor else None
	try:
		record_id = await service.update(user, payload.location, payload.location_id, cursor)
	except PresenceError as exc:
		raise to_http_error(exc) from exc
	return PresenceUpdateResponse(id=record_id)


@router.post("/heartbeat", response_model=OkResponse)
async def presence_heartbeat_endpoint(
	service: PresenceService = Depends(get_presence_service),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> OkResponse:
	try:
		refreshed = await service.heartbeat(user)
	except PresenceError as exc:
		raise to_http_error(exc) from exc
	return OkResponse(ok=refreshed)


@router.delete("", response_model=OkResponse)
async def presence_remove_endpoint(
	service: PresenceService = Depends(get_presence_service),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> OkResponse:
	try:
		removed = await service.remove(user)
	except PresenceError as exc:
		raise to_http_error(exc) from exc
	return OkResponse(ok=removed)


@router.get("/active-count", response_model=ActiveCountResponse)
async def presence_active_count_endpoint(
	service: PresenceService = Depends(get_presence_service),
) -> ActiveCountResponse:
	return ActiveCountResponse(count=await service.active_users_count())


@router.post(
	"/cleanup",
	response_model=CleanupResponse,
	dependencies=[Depends(require_roles("admin"))],
)
async def presence_cleanup_endpoint(
	service: PresenceService = Depends(get_presence_service),
) -> CleanupResponse:
	return CleanupResponse(deleted=await service.cleanup())


@router.get("/{location}/{location_id}", response_model=PresenceListResponse)
async def presence_list_endpoint(
	location: str,
	location_id: str,
	service: PresenceService = Depends(get_presence_service),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> PresenceListResponse:
	views = await service.list_by_location(user, location, location_id)
	return PresenceListResponse.from_views(location, location_id, views)


__all__ = ["router"]
