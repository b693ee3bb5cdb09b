"""FastAPI dependencies handing out the services built by the lifespan."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from enso.domain.presence.service import PresenceService
from enso.domain.references.resolver import ReferenceResolver


def get_presence_service(request: Request) -> PresenceService:
	service = getattr(request.app.state, "presence_service", None)
	if service is None:
		raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="presence_unavailable")
	return service


def get_reference_resolver(request: Request) -> ReferenceResolver:
	resolver = getattr(request.app.state, "reference_resolver", None)
	if resolver is None:
		raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="references_unavailable")
	return resolver
