"""Domain-level exceptions for search, landmark discovery and timelines."""

from __future__ import annotations

from typing import Optional


class SearchError(Exception):
	"""Base class for search feature errors."""

	reason: str = "unknown"
	status_code: int = 400

	def __init__(self, reason: str | None = None, *, field: Optional[str] = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason
		self.field = field

	def detail(self) -> dict[str, object]:
		payload: dict[str, object] = {"reason": self.reason}
		if self.field:
			payload["field"] = self.field
		return payload

	def headers(self) -> dict[str, str]:
		return {}


class InvalidInput(SearchError):
	reason = "invalid_input"
	status_code = 400


class UpstreamUnavailable(SearchError):
	"""A collaborator store failed; never reported as an empty result."""

	reason = "upstream_unavailable"
	status_code = 503

	def __init__(self, collaborator: str, reason: str | None = None) -> None:
		super().__init__(reason)
		self.collaborator = collaborator

	def detail(self) -> dict[str, object]:
		return {"reason": self.reason, "collaborator": self.collaborator}


class SearchRateLimitError(SearchError):
	reason = "rate_limit"
	status_code = 429

	def __init__(self, retry_after: Optional[int] = None) -> None:
		super().__init__()
		self.retry_after = retry_after

	def headers(self) -> dict[str, str]:
		return {"Retry-After": str(self.retry_after)} if self.retry_after else {}
