"""Resolve a detection into reference candidates."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from enso.domain.references import exceptions, formatters
from enso.domain.references.clients import ReferenceSearchClient
from enso.domain.references.schemas import Detection, Reference, ReferenceType, ResolveContext
from enso.obs import metrics as obs_metrics
from enso.settings import settings

_LOG = logging.getLogger(__name__)


class ReferenceResolver:
	"""Query the search API for a detection and format the rows.

	Each call is independent: no coalescing, no cancellation. Backing-store
	failures are logged and produce an empty list.
	"""

	def __init__(
		self,
		search_client: ReferenceSearchClient,
		*,
		limit: int | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self._client = search_client
		self._limit = limit or settings.reference_search_limit
		self._clock = clock or (lambda: datetime.now(timezone.utc))

	async def resolve(self, detection: Detection, ctx: ResolveContext) -> list[Reference]:
		ref_type = detection.type
		if ref_type is ReferenceType.LINK:
			obs_metrics.inc_reference_lookup(ref_type.value, "synthetic")
			return [formatters.new_link_reference(detection.url or "")]

		formatter = formatters.FORMATTERS.get(ref_type)
		if formatter is None:
			return []

		started = time.perf_counter()
		try:
			rows = await self._client.search(
				ref_type,
				query=detection.query,
				limit=self._limit,
				chat_id=ctx.chat_id,
				auth_token=ctx.auth_token,
			)
		except exceptions.SearchError as exc:
			_LOG.warning(
				"references.resolve.backend_failure",
				extra={"detail": exc.detail, "ref_type": ref_type.value},
			)
			obs_metrics.inc_reference_lookup(ref_type.value, "error")
			return []
		except Exception:
			_LOG.exception("references.resolve.backend_exception", extra={"ref_type": ref_type.value})
			obs_metrics.inc_reference_lookup(ref_type.value, "error")
			return []
		finally:
			obs_metrics.observe_reference_latency(ref_type.value, time.perf_counter() - started)

		now = self._clock()
		references: list[Reference] = []
		for row in rows:
			reference = self._format_row(formatter, row, now)
			if reference is not None:
				references.append(reference)
		obs_metrics.inc_reference_lookup(ref_type.value, "ok" if references else "empty")
		return references

	@staticmethod
	def _format_row(formatter: formatters.Formatter, row: dict, now: datetime) -> Optional[Reference]:
		try:
			return formatter(row, now)
		except Exception:
			_LOG.warning("references.resolve.bad_row", exc_info=True)
			return None


__all__ = ["ReferenceResolver"]
