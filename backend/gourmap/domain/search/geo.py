"""Landmark proximity: expand a landmark into nearby places."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from gourmap.domain.search.models import Landmark, PlaceDistance, PlaceLandmarkLink
from gourmap.domain.search.stores import GeoIndexStore

MIN_RADIUS_M = 100
MAX_RADIUS_M = 20000


def _known(distance: Optional[float]) -> Optional[float]:
	if distance is None:
		return None
	value = float(distance)
	return value if math.isfinite(value) else None


def within_radius(links: Iterable[PlaceLandmarkLink], radius_m: float) -> list[PlaceDistance]:
	"""Deduplicate links into place distances within ``radius_m``.

	Unknown distances are kept: a place whose distance was never backfilled is
	treated as nearby. When a place has several links the smallest known
	distance wins.
	"""

	best: dict[str, Optional[float]] = {}
	for link in links:
		if not link.place_id:
			continue
		distance = _known(link.distance_m)
		if distance is not None and distance > radius_m:
			continue
		if link.place_id not in best:
			best[link.place_id] = distance
			continue
		previous = best[link.place_id]
		if distance is not None and (previous is None or distance < previous):
			best[link.place_id] = distance

	ordered = sorted(
		best.items(),
		key=lambda pair: (pair[1] is None, pair[1] if pair[1] is not None else 0.0, pair[0]),
	)
	return [PlaceDistance(place_id=place_id, distance_m=distance) for place_id, distance in ordered]


@dataclass(slots=True)
class NearbyPlaces:
	landmark_name: Optional[str]
	places: list[PlaceDistance]

	def distances(self) -> dict[str, Optional[float]]:
		return {place.place_id: place.distance_m for place in self.places}


class GeoProximityResolver:
	def __init__(self, geo_store: GeoIndexStore) -> None:
		self._geo = geo_store

	async def places_near(self, landmark_id: str, radius_m: float) -> list[PlaceDistance]:
		links = await self._geo.links_for_landmark(landmark_id)
		return within_radius(links, radius_m)

	async def expand(self, landmark_id: str, radius_m: float) -> NearbyPlaces:
		"""Places near the landmark plus its display name, from a single index read."""

		links = await self._geo.links_for_landmark(landmark_id)
		name = next((link.landmark_name for link in links if link.landmark_name), None)
		return NearbyPlaces(landmark_name=name, places=within_radius(links, radius_m))

	async def suggest_landmarks(self, prefix: str, limit: int) -> list[Landmark]:
		if not (prefix or "").strip():
			return []
		return await self._geo.search_landmarks(prefix, limit)
