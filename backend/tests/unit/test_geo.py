import math

import pytest

from gourmap.domain.search.geo import GeoProximityResolver, within_radius
from gourmap.domain.search.models import Landmark, PlaceDistance, PlaceLandmarkLink, walk_minutes
from gourmap.domain.search.stores import _MemorySearchStore


def _link(place_id, distance, landmark="L1", name="Shibuya"):
	return PlaceLandmarkLink(place_id=place_id, landmark_id=landmark, distance_m=distance, landmark_name=name)


def test_radius_keeps_known_close_places_and_unknown_distances():
	places = within_radius([_link("near", 200), _link("far", 3500), _link("unknown", None)], 3000)
	assert places == [PlaceDistance("near", 200), PlaceDistance("unknown", None)]


def test_place_on_the_boundary_is_included():
	assert [place.place_id for place in within_radius([_link("edge", 3000)], 3000)] == ["edge"]


def test_duplicates_keep_smallest_known_distance():
	links = [
		_link("p1", None),
		_link("p1", 900),
		_link("p1", 400),
		_link("p2", 800),
		_link("p2", None),
		_link("p3", 5000),
		_link("p3", 100),
	]
	assert within_radius(links, 1000) == [
		PlaceDistance("p3", 100),
		PlaceDistance("p1", 400),
		PlaceDistance("p2", 800),
	]


def test_order_is_distance_then_place_id_with_unknown_last():
	links = [_link("b", 50), _link("z", None), _link("a", 50), _link("c", None)]
	assert [place.place_id for place in within_radius(links, 100)] == ["a", "b", "c", "z"]


@pytest.mark.parametrize(
	("distance", "expected"),
	[(0, 1), (1, 1), (80, 1), (81, 2), (800, 10), (None, None), (-5, None), (math.inf, None)],
)
def test_walk_minutes(distance, expected):
	assert walk_minutes(distance) == expected


def test_walk_minutes_uses_configured_speed():
	assert PlaceDistance("p", 300).walk_minutes(60.0) == 5


@pytest.mark.asyncio
async def test_resolver_reads_landmark_links_from_store():
	store = _MemorySearchStore()
	await store.seed(
		links=[_link("p1", 200), _link("p2", 3500), _link("p3", None), _link("p1", 100, landmark="L2", name="Ebisu")],
	)
	resolver = GeoProximityResolver(store)

	nearby = await resolver.expand("L1", 3000)
	assert nearby.landmark_name == "Shibuya"
	assert nearby.distances() == {"p1": 200, "p3": None}
	assert [place.place_id for place in await resolver.places_near("L2", 3000)] == ["p1"]
	assert await resolver.places_near("missing", 3000) == []


@pytest.mark.asyncio
async def test_landmark_suggestions_match_name_prefix():
	store = _MemorySearchStore()
	await store.seed(
		landmarks=[Landmark("L1", "渋谷"), Landmark("L2", "渋谷神泉"), Landmark("L3", "恵比寿")],
	)
	resolver = GeoProximityResolver(store)

	assert [item.landmark_id for item in await resolver.suggest_landmarks("渋谷", 8)] == ["L1", "L2"]
	assert [item.landmark_id for item in await resolver.suggest_landmarks("渋谷", 1)] == ["L1"]
	assert await resolver.suggest_landmarks("  ", 8) == []
