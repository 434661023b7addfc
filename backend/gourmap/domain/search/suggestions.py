"""Cold-start follow suggestions for viewers with a small social graph."""

from __future__ import annotations

import logging
from typing import AbstractSet, Optional

from gourmap.domain.search.models import SuggestionBlock
from gourmap.domain.search.stores import ProfileDirectory

logger = logging.getLogger(__name__)

COLD_START_MAX_FOLLOWS = 1
MAX_PROFILES = 8
INSERT_AT = 1

_TITLES = {
	0: ("Find people to follow", "Follow a few people to fill your timeline."),
	1: ("People you might also like", "A few more follows and your timeline gets livelier."),
}


class SuggestionInjector:
	def __init__(
		self,
		profile_directory: ProfileDirectory,
		*,
		max_profiles: int = MAX_PROFILES,
		insert_at: int = INSERT_AT,
	) -> None:
		self._profiles = profile_directory
		self._max_profiles = max_profiles
		self._insert_at = insert_at

	async def maybe_inject(
		self,
		viewer_follow_count: int,
		exclude_ids: AbstractSet[str],
	) -> Optional[SuggestionBlock]:
		"""Build a suggestion block, or None when the viewer is past cold start.

		Never cached: profiles are re-read on every first-page request.
		"""

		if viewer_follow_count > COLD_START_MAX_FOLLOWS or self._max_profiles <= 0:
			return None
		# Over-fetch so exclusions do not eat into the cap.
		pool = await self._profiles.recent_public_profiles(self._max_profiles + len(exclude_ids))
		picked = [profile for profile in pool if profile.id not in exclude_ids][: self._max_profiles]
		if not picked:
			return None
		title, subtitle = _TITLES[max(0, viewer_follow_count)]
		logger.debug("suggestions.block follows=%d profiles=%d", viewer_follow_count, len(picked))
		return SuggestionBlock(title=title, subtitle=subtitle, profiles=picked, insert_at=self._insert_at)
