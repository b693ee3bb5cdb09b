"""Ephemeral per-user presence: location, cursor and liveness."""

from enso.domain.presence.models import Cursor, PresenceRecord, PresenceView, UserProfile
from enso.domain.presence.service import PresenceService

__all__ = ["Cursor", "PresenceRecord", "PresenceService", "PresenceView", "UserProfile"]
