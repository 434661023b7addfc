# Ranking logic for search
"""Ranking helpers shared by text search, landmark search and timelines."""

from __future__ import annotations

from datetime import date, datetime
from typing import AbstractSet, Iterable

from gourmap.domain.search.models import ContentItem

FOLLOW_BONUS = 2.5
MIN_RECOMMEND_SCORE = 0.0
MAX_RECOMMEND_SCORE = 10.0


def clamp(value: float, *, lower: float = MIN_RECOMMEND_SCORE, upper: float = MAX_RECOMMEND_SCORE) -> float:
	return max(lower, min(upper, value))


def final_score(item: ContentItem, following: AbstractSet[str], *, follow_bonus: float = FOLLOW_BONUS) -> float:
	"""Clamped recommend score plus the bonus for followed authors."""

	score = clamp(float(item.recommend_score or 0.0))
	if item.author_id in following:
		score += follow_bonus
	return score


def _tie_break_key(item: ContentItem) -> tuple[bool, date, datetime, str]:
	# Sorted descending; items without a visit date fall behind dated ones.
	has_visit = item.visited_on is not None
	visited = item.visited_on or date.min
	return (has_visit, visited, item.created_at, item.id)


def sort_key(
	item: ContentItem,
	following: AbstractSet[str],
	*,
	follow_bonus: float = FOLLOW_BONUS,
) -> tuple[float, bool, date, datetime, str]:
	return (final_score(item, following, follow_bonus=follow_bonus), *_tie_break_key(item))


def rank(
	candidates: Iterable[ContentItem],
	viewer_following: AbstractSet[str] = frozenset(),
	*,
	follow_bonus: float = FOLLOW_BONUS,
) -> list[ContentItem]:
	"""Order candidates by relevance with deterministic tie-breaks.

	Returns a new list; the result is a permutation of the input and ranking an
	already ranked list leaves it unchanged.
	"""

	return sorted(
		candidates,
		key=lambda item: sort_key(item, viewer_following, follow_bonus=follow_bonus),
		reverse=True,
	)


def chronological(candidates: Iterable[ContentItem]) -> list[ContentItem]:
	"""Newest first by the keyset ``(created_at, id)``."""

	return sorted(candidates, key=lambda item: (item.created_at, item.id), reverse=True)
