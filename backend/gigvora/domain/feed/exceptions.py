"""Domain-level exceptions for the feed insights engine."""

from __future__ import annotations


class FeedInsightsError(Exception):
	"""Base class for feed insights errors."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class ValidationError(FeedInsightsError):
	"""Raised when request parameters cannot be interpreted."""

	reason = "invalid_request"


class UpstreamStoreError(FeedInsightsError):
	"""Raised when the persistence store fails to answer a read."""

	reason = "store_unavailable"
