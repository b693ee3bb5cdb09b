"""Reference detection and lookup endpoints for the chat composer."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from enso.api.deps import get_reference_resolver
from enso.domain.references import detector
from enso.domain.references.resolver import ReferenceResolver
from enso.domain.references.schemas import (
	DetectRequest,
	Detection,
	ReferenceListResponse,
	ResolveContext,
	ResolveRequest,
	SearchRequest,
	SearchResponse,
)
from enso.infra.auth import AuthenticatedUser, get_optional_user

router = APIRouter(prefix="/references", tags=["references"])


def _context(chat_id: str, user: Optional[AuthenticatedUser]) -> ResolveContext:
	return ResolveContext(chat_id=chat_id, auth_token=user.token if user else None)


@router.post("/detect", response_model=Detection)
async def detect_endpoint(payload: DetectRequest) -> Detection:
	return detector.detect(payload.input)


@router.post("/resolve", response_model=ReferenceListResponse)
async def resolve_endpoint(
	payload: ResolveRequest,
	resolver: ReferenceResolver = Depends(get_reference_resolver),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> ReferenceListResponse:
	items = await resolver.resolve(payload.detection, _context(payload.chat_id, user))
	return ReferenceListResponse(items=items)


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(
	payload: SearchRequest,
	resolver: ReferenceResolver = Depends(get_reference_resolver),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> SearchResponse:
	detection = detector.detect(payload.input)
	items = await resolver.resolve(detection, _context(payload.chat_id, user))
	return SearchResponse(detection=detection, items=items)


__all__ = ["router"]
