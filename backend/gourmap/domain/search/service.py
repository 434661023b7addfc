"""Service layer for search, landmark discovery and timelines."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Mapping, Optional

from gourmap.domain.search import cursor as cursor_mod
from gourmap.domain.search import policy, ranking, schemas
from gourmap.domain.search.geo import GeoProximityResolver
from gourmap.domain.search.interleave import interleave
from gourmap.domain.search.keywords import KeywordMatch, KeywordResolver, get_resolver, normalize
from gourmap.domain.search.models import ContentFilters, ContentItem, SuggestionBlock, walk_minutes
from gourmap.domain.search.nudge import find_alternatives
from gourmap.domain.search.stores import (
	SearchStores,
	reset_memory_state,
	resolve_stores,
	seed_memory_store,
)
from gourmap.domain.search.suggestions import SuggestionInjector
from gourmap.obs import metrics as obs_metrics
from gourmap.settings import settings

logger = logging.getLogger(__name__)

__all__ = ["SearchService", "seed_memory_store", "reset_memory_state"]


def _suggestion_out(block: Optional[SuggestionBlock]) -> Optional[schemas.SuggestionOut]:
	if block is None:
		return None
	return schemas.SuggestionOut(
		title=block.title,
		subtitle=block.subtitle,
		insert_at=block.insert_at,
		profiles=[schemas.AuthorSummary.from_profile(profile) for profile in block.profiles],
	)


class SearchService:
	def __init__(self, stores: Optional[SearchStores] = None, *, resolver: Optional[KeywordResolver] = None) -> None:
		self._fixed_stores = stores
		self._fixed_resolver = resolver

	def _stores(self) -> SearchStores:
		# Resolved per call so a settings change (tests, tooling) takes effect.
		return self._fixed_stores or resolve_stores()

	def _resolver(self) -> KeywordResolver:
		return self._fixed_resolver or get_resolver()

	async def _followees(self, stores: SearchStores, viewer_id: Optional[str]) -> set[str]:
		if not viewer_id:
			return set()
		return await stores.social.accepted_followees_of(viewer_id)

	async def _social_context(self, stores: SearchStores, viewer_id: Optional[str]) -> tuple[set[str], int]:
		if not viewer_id:
			return set(), 0
		followees, count = await asyncio.gather(
			stores.social.accepted_followees_of(viewer_id),
			stores.social.follow_count_of(viewer_id),
		)
		return set(followees), int(count)

	async def _available_labels(self, stores: SearchStores) -> list[str]:
		return [label for label, _ in await stores.content.category_counts()]

	def _resolve(self, raw: str, labels: Iterable[str]) -> KeywordMatch:
		match = self._resolver().resolve(raw, labels)
		obs_metrics.inc_keyword_match(match.matched is not None)
		return match

	async def _render(
		self,
		stores: SearchStores,
		items: list[ContentItem],
		distances: Optional[Mapping[str, Optional[float]]] = None,
	) -> list[schemas.PostResult]:
		if not items:
			return []
		profiles = await stores.profiles.profiles_by_ids({item.author_id for item in items})
		rendered: list[schemas.PostResult] = []
		for item in items:
			profile = profiles.get(item.author_id)
			distance = distances.get(item.place_id) if distances is not None and item.place_id else None
			rendered.append(
				schemas.PostResult(
					id=item.id,
					author_id=item.author_id,
					created_at=item.created_at,
					visited_on=item.visited_on,
					body=item.body,
					place_id=item.place_id,
					place_name=item.place_name,
					category=item.category,
					recommend_score=item.recommend_score,
					price_yen=item.price_yen,
					price_range=item.price_range,
					author=schemas.AuthorSummary.from_profile(profile) if profile else None,
					landmark_distance_m=distance,
					landmark_walk_minutes=walk_minutes(distance, settings.walk_meters_per_minute),
				)
			)
		return rendered

	async def search_by_text(
		self,
		query: Optional[str],
		viewer_id: Optional[str] = None,
		*,
		follow_only: bool = False,
		cursor: Optional[str] = None,
		limit: int = policy.DEFAULT_LIMIT,
	) -> schemas.TextSearchResponse:
		start = time.perf_counter()
		try:
			policy.check_limit(limit)
			cursor_key = cursor_mod.decode_cursor(cursor)
			if follow_only:
				policy.require_viewer(viewer_id, field="follow")
			await policy.enforce_rate_limit(viewer_id, kind="search", limit=settings.search_per_minute)

			obs_metrics.inc_search_query("text")
			if not normalize(query):
				return schemas.TextSearchResponse(items=[], next_cursor=None)

			stores = self._stores()
			followees, labels = await asyncio.gather(
				self._followees(stores, viewer_id),
				self._available_labels(stores),
			)
			match = self._resolve(query or "", labels)
			filters = ContentFilters(
				category=match.matched,
				author_ids=frozenset(followees | {viewer_id}) if follow_only and viewer_id else None,
			)
			window = await stores.content.query_by_text(match.rest, filters, cursor_key, limit)
			ranked = ranking.rank(window, followees, follow_bonus=settings.search_follow_bonus)
			response = schemas.TextSearchResponse(
				items=await self._render(stores, ranked),
				next_cursor=cursor_mod.next_cursor(window, limit),
				category=match.matched,
				text=match.rest,
			)
			obs_metrics.observe_search_results("text", len(response.items))
			logger.info(
				"search.text category=%s follow=%s results=%d",
				match.matched,
				follow_only,
				len(response.items),
			)
			return response
		finally:
			obs_metrics.observe_search_latency("text", time.perf_counter() - start)

	async def search_by_landmark(
		self,
		landmark_id: Optional[str],
		query: Optional[str] = None,
		*,
		radius_m: Optional[int] = None,
		viewer_id: Optional[str] = None,
		follow_only: bool = False,
		cursor: Optional[str] = None,
		limit: int = policy.DEFAULT_LIMIT,
	) -> schemas.LandmarkSearchResponse:
		start = time.perf_counter()
		try:
			landmark = policy.check_landmark_id(landmark_id)
			if radius_m is None:
				radius_m = settings.landmark_default_radius_m
			policy.check_radius(radius_m)
			policy.check_limit(limit)
			cursor_key = cursor_mod.decode_cursor(cursor)
			if follow_only:
				policy.require_viewer(viewer_id, field="follow")
			await policy.enforce_rate_limit(viewer_id, kind="search", limit=settings.search_per_minute)
			obs_metrics.inc_search_query("landmark")

			stores = self._stores()
			has_text = bool(normalize(query))
			geo = GeoProximityResolver(stores.geo)
			nearby, followees, labels = await asyncio.gather(
				geo.expand(landmark, radius_m),
				self._followees(stores, viewer_id),
				self._available_labels(stores) if has_text else _no_labels(),
			)

			match = self._resolve(query or "", labels) if has_text else KeywordMatch(matched=None, rest="")
			author_ids = frozenset(followees | {viewer_id}) if follow_only and viewer_id else None
			place_ids = frozenset(place.place_id for place in nearby.places)
			window: list[ContentItem] = []
			nudges = None

			if place_ids:
				if has_text:
					filters = ContentFilters(category=match.matched, place_ids=place_ids, author_ids=author_ids)
					window = await stores.content.query_by_text(match.rest, filters, cursor_key, limit)
					ordered = ranking.rank(window, followees, follow_bonus=settings.search_follow_bonus)
				elif author_ids is not None:
					filters = ContentFilters(place_ids=place_ids, author_ids=author_ids)
					window = await stores.content.query_by_text("", filters, cursor_key, limit)
					ordered = list(window)
				else:
					window = await stores.content.query_by_id_set(place_ids, cursor_key, limit)
					ordered = list(window)
			else:
				ordered = []

			if has_text and not window and cursor_key is None and viewer_id:

				async def sample(candidate_places: frozenset[str], size: int) -> list[ContentItem]:
					filters = ContentFilters(category=match.matched, place_ids=candidate_places, author_ids=author_ids)
					return await stores.content.query_by_text(match.rest, filters, None, size)

				found = await find_alternatives(stores.geo, landmark, radius_m, sample)
				nudges = [
					schemas.NudgeOut(
						landmark_id=alt.landmark_id,
						landmark_name=alt.landmark_name,
						sample_post_id=alt.sample_post_id,
						kind=alt.kind,
						shared_places=alt.shared_places,
					)
					for alt in found
				] or None

			response = schemas.LandmarkSearchResponse(
				items=await self._render(stores, ordered, nearby.distances()),
				next_cursor=cursor_mod.next_cursor(window, limit),
				landmark_id=landmark,
				landmark_name=nearby.landmark_name,
				radius_m=radius_m,
				category=match.matched,
				text=match.rest,
				nudge=nudges,
			)
			obs_metrics.observe_search_results("landmark", len(response.items))
			logger.info(
				"search.landmark landmark=%s radius=%d places=%d category=%s results=%d nudge=%d",
				landmark,
				radius_m,
				len(place_ids),
				match.matched,
				len(response.items),
				len(nudges or []),
			)
			return response
		finally:
			obs_metrics.observe_search_latency("landmark", time.perf_counter() - start)

	async def _first_page_suggestion(
		self,
		stores: SearchStores,
		cursor_key: Optional[cursor_mod.CursorKey],
		follow_count: int,
		exclude_ids: set[str],
		timeline: str,
	) -> Optional[schemas.SuggestionOut]:
		if cursor_key is not None:
			return None
		injector = SuggestionInjector(
			stores.profiles,
			max_profiles=settings.suggestion_max_profiles,
			insert_at=settings.suggestion_insert_at,
		)
		block = await injector.maybe_inject(follow_count, exclude_ids)
		if block is not None:
			obs_metrics.inc_suggestion_injected(timeline)
		return _suggestion_out(block)

	async def timeline_personalized(
		self,
		viewer_id: Optional[str],
		*,
		cursor: Optional[str] = None,
		limit: int = policy.DEFAULT_LIMIT,
	) -> schemas.TimelineResponse:
		start = time.perf_counter()
		try:
			viewer = policy.require_viewer(viewer_id)
			policy.check_limit(limit)
			cursor_key = cursor_mod.decode_cursor(cursor)
			await policy.enforce_rate_limit(viewer, kind="timeline", limit=settings.timeline_per_minute)
			obs_metrics.inc_search_query("timeline")

			stores = self._stores()
			followees, follow_count = await self._social_context(stores, viewer)
			authors = frozenset(followees | {viewer})
			window = await stores.content.query_by_authors(authors, cursor_key, limit)
			ordered = interleave(
				ranking.rank(window, frozenset(), follow_bonus=0.0),
				settings.feed_diversity_window,
			)
			suggestion = await self._first_page_suggestion(
				stores, cursor_key, follow_count, set(authors), "personalized"
			)
			response = schemas.TimelineResponse(
				items=await self._render(stores, ordered),
				next_cursor=cursor_mod.next_cursor(window, limit),
				suggestion=suggestion,
			)
			obs_metrics.observe_search_results("timeline", len(response.items))
			logger.info(
				"timeline.personalized follows=%d results=%d suggestion=%s",
				follow_count,
				len(response.items),
				suggestion is not None,
			)
			return response
		finally:
			obs_metrics.observe_search_latency("timeline", time.perf_counter() - start)

	async def timeline_discovery(
		self,
		viewer_id: Optional[str] = None,
		*,
		cursor: Optional[str] = None,
		limit: int = policy.DEFAULT_LIMIT,
	) -> schemas.TimelineResponse:
		start = time.perf_counter()
		try:
			policy.check_limit(limit)
			cursor_key = cursor_mod.decode_cursor(cursor)
			await policy.enforce_rate_limit(viewer_id, kind="timeline", limit=settings.timeline_per_minute)
			obs_metrics.inc_search_query("discover")

			stores = self._stores()
			followees, follow_count = await self._social_context(stores, viewer_id)
			excluded = set(followees)
			if viewer_id:
				excluded.add(viewer_id)
			window = await stores.content.query_recent_excluding(frozenset(excluded), cursor_key, limit)
			ordered = interleave(
				ranking.rank(window, followees, follow_bonus=settings.search_follow_bonus),
				settings.feed_diversity_window,
			)
			suggestion = await self._first_page_suggestion(stores, cursor_key, follow_count, excluded, "discover")
			response = schemas.TimelineResponse(
				items=await self._render(stores, ordered),
				next_cursor=cursor_mod.next_cursor(window, limit),
				suggestion=suggestion,
			)
			obs_metrics.observe_search_results("discover", len(response.items))
			logger.info(
				"timeline.discover anonymous=%s follows=%d results=%d suggestion=%s",
				viewer_id is None,
				follow_count,
				len(response.items),
				suggestion is not None,
			)
			return response
		finally:
			obs_metrics.observe_search_latency("discover", time.perf_counter() - start)

	async def list_genres(self) -> schemas.GenresResponse:
		counts = await self._stores().content.category_counts()
		return schemas.GenresResponse(
			genres=[schemas.GenreCount(label=label, places=places) for label, places in counts]
		)

	async def suggest_landmarks(
		self,
		prefix: Optional[str],
		limit: int = policy.DEFAULT_SUGGEST_LIMIT,
	) -> schemas.LandmarkSuggestResponse:
		policy.check_limit(limit, lower=policy.MIN_SUGGEST_LIMIT, upper=policy.MAX_SUGGEST_LIMIT)
		geo = GeoProximityResolver(self._stores().geo)
		landmarks = await geo.suggest_landmarks(prefix or "", limit)
		return schemas.LandmarkSuggestResponse(
			landmarks=[schemas.LandmarkOut(landmark_id=item.landmark_id, name=item.name) for item in landmarks]
		)


async def _no_labels() -> list[str]:
	return []
