"""Background sweeper deleting presence records past the cleanup window."""

from __future__ import annotations

import asyncio
import logging

from enso.domain.presence.service import PresenceService
from enso.settings import settings

logger = logging.getLogger(__name__)


async def run_presence_sweeper(service: PresenceService, interval_s: float | None = None) -> None:
	"""Periodically call ``service.cleanup()`` until cancelled."""
	interval = max(0.05, float(interval_s if interval_s is not None else settings.presence_sweep_interval_seconds))
	while True:
		await asyncio.sleep(interval)
		try:
			await service.cleanup()
		except asyncio.CancelledError:
			raise
		except Exception:
			# The next tick retries.
			logger.exception("presence sweeper iteration failed")


__all__ = ["run_presence_sweeper"]
