"""Custom exceptions for presence operations."""

from __future__ import annotations

from fastapi import status


class PresenceError(Exception):
	"""Base class for presence related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "presence_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class Unauthenticated(PresenceError):
	"""Raised when a mutation arrives without an identity."""

	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "unauthenticated"


class UserNotFound(PresenceError):
	"""Raised when the authenticated subject has no user profile."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "user_not_found"
