"""Alternative landmarks offered when a landmark search comes back empty."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Awaitable, Callable, Optional

from gourmap.domain.search.geo import within_radius
from gourmap.domain.search.models import ContentItem, LandmarkNudge
from gourmap.domain.search.stores import GeoIndexStore

logger = logging.getLogger(__name__)

MAX_NEARBY = 2
MAX_SUGGESTIONS = 5
HUB_CANDIDATES = 10
SAMPLE_WINDOW = 20
MIN_ALT_RADIUS_M = 3000
MAX_ALT_RADIUS_M = 12000

# Runs the original text/category query restricted to a set of place ids.
SampleQuery = Callable[[frozenset[str], int], Awaitable[list[ContentItem]]]


def alternative_radius(radius_m: float) -> float:
	return min(MAX_ALT_RADIUS_M, max(MIN_ALT_RADIUS_M, radius_m * 3))


class _Sampler:
	"""Finds one matching post per landmark, never reusing a post across suggestions."""

	def __init__(self, geo_store: GeoIndexStore, sample_query: SampleQuery, alt_radius: float) -> None:
		self._geo = geo_store
		self._query = sample_query
		self._alt_radius = alt_radius
		self._seen_posts: set[str] = set()

	async def sample(self, landmark_id: str) -> Optional[str]:
		nearby = within_radius(await self._geo.links_for_landmark(landmark_id), self._alt_radius)
		if not nearby:
			return None
		for item in await self._query(frozenset(place.place_id for place in nearby), SAMPLE_WINDOW):
			if item.id not in self._seen_posts:
				self._seen_posts.add(item.id)
				return item.id
		return None


async def _shared_place_counts(
	geo_store: GeoIndexStore, origin_landmark_id: str, alt_radius: float
) -> tuple[list[tuple[str, int]], dict[str, Optional[str]]]:
	origin_places = within_radius(await geo_store.links_for_landmark(origin_landmark_id), alt_radius)
	if not origin_places:
		return [], {}

	shared: dict[str, set[str]] = defaultdict(set)
	names: dict[str, Optional[str]] = {}
	for link in await geo_store.links_for_places(frozenset(place.place_id for place in origin_places)):
		if link.landmark_id == origin_landmark_id:
			continue
		if link.distance_m is not None and link.distance_m > alt_radius:
			continue
		shared[link.landmark_id].add(link.place_id)
		if link.landmark_name and not names.get(link.landmark_id):
			names[link.landmark_id] = link.landmark_name
	counts = sorted(((landmark_id, len(places)) for landmark_id, places in shared.items()), key=lambda pair: (-pair[1], pair[0]))
	return counts, names


async def find_alternatives(
	geo_store: GeoIndexStore,
	origin_landmark_id: str,
	radius_m: float,
	sample_query: SampleQuery,
	*,
	max_nearby: int = MAX_NEARBY,
	max_suggestions: int = MAX_SUGGESTIONS,
) -> list[LandmarkNudge]:
	"""Nearby landmarks sharing places with the origin, then hub landmarks.

	A candidate is offered only when it has a matching post that no earlier
	suggestion already used as its sample.
	"""

	alt_radius = alternative_radius(radius_m)
	sampler = _Sampler(geo_store, sample_query, alt_radius)
	seen_landmarks = {origin_landmark_id}
	nudges: list[LandmarkNudge] = []

	counts, names = await _shared_place_counts(geo_store, origin_landmark_id, alt_radius)
	for landmark_id, shared in counts[:max_nearby]:
		post_id = await sampler.sample(landmark_id)
		if post_id is None:
			continue
		seen_landmarks.add(landmark_id)
		nudges.append(
			LandmarkNudge(
				landmark_id=landmark_id,
				landmark_name=names.get(landmark_id),
				sample_post_id=post_id,
				kind="nearby",
				shared_places=shared,
			)
		)

	if len(nudges) < max_suggestions:
		for hub in await geo_store.hub_landmarks(HUB_CANDIDATES):
			if len(nudges) >= max_suggestions:
				break
			if hub.landmark_id in seen_landmarks:
				continue
			post_id = await sampler.sample(hub.landmark_id)
			if post_id is None:
				continue
			seen_landmarks.add(hub.landmark_id)
			nudges.append(LandmarkNudge(landmark_id=hub.landmark_id, landmark_name=hub.name, sample_post_id=post_id, kind="hub"))

	logger.info("search.nudge origin=%s nearby=%d offered=%d", origin_landmark_id, min(len(counts), max_nearby), len(nudges))
	return nudges
