"""HTTP client factory for the external search API."""

from __future__ import annotations

import httpx

from enso.settings import settings


def create_search_http_client(
	base_url: str | None = None,
	*,
	timeout: float | None = None,
	transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
	"""Build the shared AsyncClient used by the reference resolver.

	Timeouts live here; the resolver itself imposes none.
	"""
	return httpx.AsyncClient(
		base_url=(base_url or settings.search_api_url).rstrip("/"),
		timeout=httpx.Timeout(timeout if timeout is not None else settings.search_timeout_seconds),
		headers={"Accept": "application/json"},
		transport=transport,
	)
