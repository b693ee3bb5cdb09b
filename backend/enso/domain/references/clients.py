"""Client wrapper for the external reference search API."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from enso.domain.references import exceptions
from enso.domain.references.schemas import ReferenceType

# Message and file searches are scoped to the chat being typed in.
_SEARCH_PATHS: dict[ReferenceType, str] = {
	ReferenceType.USER: "/users/search",
	ReferenceType.MESSAGE: "/chats/{chat_id}/messages/search",
	ReferenceType.CHAT: "/chats/search",
	ReferenceType.FILE: "/chats/{chat_id}/files/search",
	ReferenceType.TOPIC: "/topics/search",
}


def search_path(ref_type: ReferenceType, chat_id: Optional[str] = None) -> str:
	template = _SEARCH_PATHS.get(ref_type)
	if template is None:
		raise exceptions.QueryValidationError(f"unsearchable_type:{ref_type.value}")
	if "{chat_id}" in template:
		if not chat_id:
			raise exceptions.QueryValidationError("chat_id_required")
		return template.format(chat_id=quote(chat_id, safe=""))
	return template


class ReferenceSearchClient:
	"""Thin async wrapper issuing one GET per search against the API."""

	def __init__(self, http: httpx.AsyncClient) -> None:
		self._http = http

	async def search(
		self,
		ref_type: ReferenceType,
		*,
		query: str,
		limit: int,
		chat_id: Optional[str] = None,
		auth_token: Optional[str] = None,
	) -> list[dict[str, Any]]:
		path = search_path(ref_type, chat_id)
		headers = {"Authorization": f"Bearer {auth_token}"} if auth_token else None
		try:
			response = await self._http.get(path, params={"q": query, "limit": limit}, headers=headers)
			response.raise_for_status()
			payload = response.json()
		except httpx.HTTPStatusError as exc:
			raise exceptions.BackendError(f"search_http_{exc.response.status_code}") from exc
		except httpx.HTTPError as exc:
			raise exceptions.BackendError("search_unavailable") from exc
		except ValueError as exc:
			raise exceptions.BackendError("search_bad_payload") from exc
		return self._parse_rows(payload)

	@staticmethod
	def _parse_rows(payload: Any) -> list[dict[str, Any]]:
		if payload is None:
			return []
		if isinstance(payload, dict):
			# Some endpoints wrap results as {"items": [...]}
			payload = payload.get("items") or payload.get("results") or []
		if not isinstance(payload, list):
			raise exceptions.BackendError("search_bad_payload")
		return [row for row in payload if isinstance(row, dict)]


__all__ = ["ReferenceSearchClient", "search_path"]
