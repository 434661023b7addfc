"""Input bounds and rate limits for search and timelines."""

from __future__ import annotations

from typing import Optional

from gourmap.domain.search.exceptions import InvalidInput, SearchRateLimitError
from gourmap.domain.search.geo import MAX_RADIUS_M, MIN_RADIUS_M
from gourmap.infra.rate_limit import allow

MIN_LIMIT = 1
MAX_LIMIT = 50
DEFAULT_LIMIT = 20

MIN_SUGGEST_LIMIT = 1
MAX_SUGGEST_LIMIT = 20
DEFAULT_SUGGEST_LIMIT = 8


def check_limit(limit: int, *, lower: int = MIN_LIMIT, upper: int = MAX_LIMIT) -> int:
	if not lower <= limit <= upper:
		raise InvalidInput("limit_out_of_range", field="limit")
	return limit


def check_radius(radius_m: float) -> float:
	if not MIN_RADIUS_M <= radius_m <= MAX_RADIUS_M:
		raise InvalidInput("radius_out_of_range", field="radius_m")
	return radius_m


def check_landmark_id(landmark_id: Optional[str]) -> str:
	value = (landmark_id or "").strip()
	if not value:
		raise InvalidInput("landmark_required", field="landmark_id")
	return value


def require_viewer(viewer_id: Optional[str], *, field: str = "viewer") -> str:
	if not viewer_id:
		raise InvalidInput("viewer_required", field=field)
	return viewer_id


async def enforce_rate_limit(actor_id: Optional[str], *, kind: str, limit: int) -> None:
	"""Per-viewer fixed-window budget; anonymous callers share a single bucket."""

	decision = await allow(kind, actor_id or "anonymous", limit=limit)
	if not decision:
		raise SearchRateLimitError(retry_after=decision.retry_after)
