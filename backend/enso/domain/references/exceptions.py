"""Custom exceptions for reference search operations."""

from __future__ import annotations


class SearchError(Exception):
	"""Base class for reference search errors."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code


class QueryValidationError(SearchError):
	"""Raised when a detection cannot be turned into a search request."""

	def __init__(self, detail: str, *, status_code: int = 422) -> None:
		super().__init__(detail, status_code=status_code)


class BackendError(SearchError):
	"""Raised when the search backend is unreachable or rejects a request."""

	def __init__(self, detail: str = "backend_error", *, status_code: int = 503) -> None:
		super().__init__(detail, status_code=status_code)
