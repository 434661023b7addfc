"""Fixed-window request budgets kept in Redis."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from gourmap.infra.redis import redis_client


@dataclass(slots=True, frozen=True)
class RateDecision:
	allowed: bool
	count: int
	limit: int
	retry_after: int

	def __bool__(self) -> bool:
		return self.allowed


def _window_key(kind: str, actor_id: str, slot: int, window: int) -> str:
	return f"rl:{kind}:{actor_id}:{slot}:{window}"


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> RateDecision:
	"""Count one hit against ``kind`` for ``actor_id`` in the current window.

	The decision is truthy while the caller is within budget; ``retry_after`` is
	the number of seconds until the window rolls over.
	"""

	window = max(1, int(window_seconds))
	now = now or time.time()
	slot = int(math.floor(now / window))
	retry_after = max(1, int(math.ceil((slot + 1) * window - now)))
	if limit <= 0:
		return RateDecision(allowed=False, count=0, limit=limit, retry_after=retry_after)

	key = _window_key(kind, actor_id, slot, window)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	count = int(count)
	return RateDecision(allowed=count <= limit, count=count, limit=limit, retry_after=retry_after)
