"""Author-diversity reordering for timeline pages."""

from __future__ import annotations

from collections import deque
from typing import Callable, Hashable, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_WINDOW = 3


def _default_author(item) -> Hashable:
	return item.author_id


def interleave(
	items: Sequence[T],
	window: int = DEFAULT_WINDOW,
	*,
	author_of: Callable[[T], Hashable] = _default_author,
) -> list[T]:
	"""Greedy anti-repetition pass.

	Repeatedly takes the first remaining item whose author is absent from the
	last ``window`` emitted items, falling back to the head of the pool when every
	remaining author is recent. The input is left untouched.
	"""

	pool = list(items)
	if window <= 0 or len(pool) < 2:
		return pool

	output: list[T] = []
	recent: deque[Hashable] = deque(maxlen=window)
	while pool:
		pick = 0
		for index, candidate in enumerate(pool):
			if author_of(candidate) not in recent:
				pick = index
				break
		chosen = pool.pop(pick)
		output.append(chosen)
		recent.append(author_of(chosen))
	return output
