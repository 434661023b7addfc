"""Collaborator stores behind the discovery service.

Two interchangeable backends implement the same interfaces: an asyncpg-backed
store for PostgreSQL and an in-memory store used by tests and local tooling.
``settings.search_backend`` picks one; a failing backend is never swapped for
the other at runtime.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Optional, Protocol, Sequence

import asyncpg

from gourmap.domain.search import cursor as cursor_mod
from gourmap.domain.search.exceptions import UpstreamUnavailable
from gourmap.domain.search.keywords import normalize
from gourmap.domain.search.models import (
	ContentFilters,
	ContentItem,
	FollowEdge,
	FollowStatus,
	HubLandmark,
	Landmark,
	PlaceLandmarkLink,
	Profile,
)
from gourmap.infra.postgres import connection
from gourmap.obs import metrics as obs_metrics
from gourmap.settings import settings

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
	async def query_by_text(
		self,
		text: str,
		filters: ContentFilters,
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]: ...

	async def query_by_id_set(
		self,
		place_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]: ...

	async def query_recent_excluding(
		self,
		excluded_author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		"""Newest posts by public authors, skipping ``excluded_author_ids``."""
		...

	async def query_by_authors(
		self,
		author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]: ...

	async def category_counts(self) -> list[tuple[str, int]]: ...


class SocialGraph(Protocol):
	async def accepted_followees_of(self, viewer_id: str) -> set[str]: ...

	async def follow_count_of(self, viewer_id: str) -> int: ...


class ProfileDirectory(Protocol):
	async def recent_public_profiles(self, limit: int) -> list[Profile]: ...

	async def profiles_by_ids(self, ids: Iterable[str]) -> dict[str, Profile]: ...


class GeoIndexStore(Protocol):
	async def links_for_landmark(self, landmark_id: str) -> list[PlaceLandmarkLink]: ...

	async def links_for_places(self, place_ids: AbstractSet[str]) -> list[PlaceLandmarkLink]: ...

	async def search_landmarks(self, prefix: str, limit: int) -> list[Landmark]: ...

	async def hub_landmarks(self, limit: int) -> list[HubLandmark]: ...


@dataclass(slots=True)
class SearchStores:
	content: ContentStore
	social: SocialGraph
	profiles: ProfileDirectory
	geo: GeoIndexStore


def _text_tokens(text: str) -> list[str]:
	normalized = normalize(text)
	return normalized.split(" ") if normalized else []


def _matches_text(item: ContentItem, tokens: Sequence[str]) -> bool:
	if not tokens:
		return True
	haystack = " ".join(part for part in (item.body, item.place_name, item.category) if part).lower()
	return all(token in haystack for token in tokens)


def _newest(items: Iterable[ContentItem], cursor: Optional[cursor_mod.CursorKey], limit: int) -> list[ContentItem]:
	window = [item for item in items if cursor_mod.is_before(item, cursor)]
	window.sort(key=lambda item: (item.created_at, item.id), reverse=True)
	return window[:limit]


class _MemorySearchStore:
	"""Process-local store for tests and local tooling.

	Reads never await, so each one sees a consistent snapshot; the lock only
	serialises seeding and resets.
	"""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.items: dict[str, ContentItem] = {}
		self.follows: list[FollowEdge] = []
		self.profiles: dict[str, Profile] = {}
		self.links: list[PlaceLandmarkLink] = []
		self.landmarks: dict[str, Landmark] = {}
		self.hubs: list[HubLandmark] = []

	async def reset(self) -> None:
		async with self._lock:
			self.items.clear()
			self.follows.clear()
			self.profiles.clear()
			self.links.clear()
			self.landmarks.clear()
			self.hubs.clear()

	async def seed(
		self,
		*,
		items: Iterable[ContentItem] | None = None,
		follows: Iterable[FollowEdge] | None = None,
		profiles: Iterable[Profile] | None = None,
		links: Iterable[PlaceLandmarkLink] | None = None,
		landmarks: Iterable[Landmark] | None = None,
		hubs: Iterable[HubLandmark] | None = None,
	) -> None:
		async with self._lock:
			self.items = {item.id: item for item in items or []}
			self.follows = list(follows or [])
			self.profiles = {profile.id: profile for profile in profiles or []}
			self.links = list(links or [])
			self.landmarks = {landmark.landmark_id: landmark for landmark in landmarks or []}
			self.hubs = sorted(hubs or [], key=lambda hub: (hub.priority, hub.landmark_id))
			for link in self.links:
				if link.landmark_id not in self.landmarks:
					self.landmarks[link.landmark_id] = Landmark(link.landmark_id, link.landmark_name)

	# ContentStore
	async def query_by_text(
		self,
		text: str,
		filters: ContentFilters,
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		tokens = _text_tokens(text)
		category = normalize(filters.category) if filters.category else None
		matched = []
		for item in self.items.values():
			if category is not None and normalize(item.category) != category:
				continue
			if filters.place_ids is not None and item.place_id not in filters.place_ids:
				continue
			if filters.author_ids is not None and item.author_id not in filters.author_ids:
				continue
			if _matches_text(item, tokens):
				matched.append(item)
		return _newest(matched, cursor, limit)

	async def query_by_id_set(
		self,
		place_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		return _newest((item for item in self.items.values() if item.place_id in place_ids), cursor, limit)

	async def query_recent_excluding(
		self,
		excluded_author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		public = {pid for pid, profile in self.profiles.items() if profile.is_public}
		return _newest(
			(
				item
				for item in self.items.values()
				if item.author_id in public and item.author_id not in excluded_author_ids
			),
			cursor,
			limit,
		)

	async def query_by_authors(
		self,
		author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		return _newest((item for item in self.items.values() if item.author_id in author_ids), cursor, limit)

	async def category_counts(self) -> list[tuple[str, int]]:
		places: dict[str, str] = {}
		for item in self.items.values():
			if item.place_id and item.category and item.category.strip():
				places[item.place_id] = item.category.strip()
		counts = Counter(places.values())
		return sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))

	# SocialGraph
	def _followees(self, viewer_id: str) -> set[str]:
		return {
			edge.followee_id
			for edge in self.follows
			if edge.follower_id == viewer_id and edge.status == FollowStatus.ACCEPTED
		}

	async def accepted_followees_of(self, viewer_id: str) -> set[str]:
		return self._followees(viewer_id)

	async def follow_count_of(self, viewer_id: str) -> int:
		return len(self._followees(viewer_id))

	# ProfileDirectory
	async def recent_public_profiles(self, limit: int) -> list[Profile]:
		public = [profile for profile in self.profiles.values() if profile.is_public]
		public.sort(key=lambda profile: (profile.created_at is not None, profile.created_at, profile.id), reverse=True)
		return public[:limit]

	async def profiles_by_ids(self, ids: Iterable[str]) -> dict[str, Profile]:
		wanted = set(ids)
		return {pid: profile for pid, profile in self.profiles.items() if pid in wanted}

	# GeoIndexStore
	async def links_for_landmark(self, landmark_id: str) -> list[PlaceLandmarkLink]:
		return [link for link in self.links if link.landmark_id == landmark_id]

	async def links_for_places(self, place_ids: AbstractSet[str]) -> list[PlaceLandmarkLink]:
		return [link for link in self.links if link.place_id in place_ids]

	async def search_landmarks(self, prefix: str, limit: int) -> list[Landmark]:
		needle = normalize(prefix)
		if not needle:
			return []
		hits = [
			landmark
			for landmark in self.landmarks.values()
			if landmark.name and normalize(landmark.name).startswith(needle)
		]
		hits.sort(key=lambda landmark: (len(landmark.name or ""), landmark.name or "", landmark.landmark_id))
		return hits[:limit]

	async def hub_landmarks(self, limit: int) -> list[HubLandmark]:
		return self.hubs[:limit]


_POST_COLUMNS = """
	p.id::text AS id,
	p.user_id::text AS author_id,
	p.created_at,
	p.visited_on,
	COALESCE(p.content, '') AS body,
	p.place_id,
	COALESCE(p.place_name, pl.name) AS place_name,
	pl.primary_genre AS category,
	p.recommend_score,
	p.price_yen,
	p.price_range
"""

_POST_FROM = "FROM posts p LEFT JOIN places pl ON pl.place_id = p.place_id"

_PUBLIC_AUTHOR_JOIN = "JOIN profiles pr ON pr.id = p.user_id AND pr.is_public = TRUE"


def _escape_like(value: str) -> str:
	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _item_from_record(record: asyncpg.Record) -> ContentItem:
	score = record["recommend_score"]
	return ContentItem(
		id=str(record["id"]),
		author_id=str(record["author_id"]),
		created_at=record["created_at"],
		body=record["body"] or "",
		visited_on=record["visited_on"],
		place_id=str(record["place_id"]) if record["place_id"] is not None else None,
		place_name=record["place_name"],
		category=record["category"],
		recommend_score=float(score) if score is not None else None,
		price_yen=record["price_yen"],
		price_range=record["price_range"],
	)


class _QueryBuilder:
	"""Accumulates WHERE clauses with positional asyncpg parameters."""

	def __init__(self, *joins: str) -> None:
		self.joins = joins
		self.clauses: list[str] = []
		self.params: list[object] = []

	def add(self, template: str, *values: object) -> None:
		placeholders = []
		for value in values:
			self.params.append(value)
			placeholders.append(f"${len(self.params)}")
		self.clauses.append(template.format(*placeholders))

	def keyset(self, cursor: Optional[cursor_mod.CursorKey]) -> None:
		if cursor is not None:
			self.add("(p.created_at, p.id::text) < ({}, {})", cursor.created_at, cursor.item_id)

	def render(self, limit: int) -> tuple[str, list[object]]:
		source = " ".join((_POST_FROM, *self.joins))
		where = f"WHERE {' AND '.join(self.clauses)}" if self.clauses else ""
		self.params.append(limit)
		sql = (
			f"SELECT {_POST_COLUMNS} {source} {where} "
			f"ORDER BY p.created_at DESC, p.id::text DESC LIMIT ${len(self.params)}"
		)
		return sql, self.params


class PostgresSearchStore:
	"""asyncpg implementation; every driver or socket error becomes UpstreamUnavailable."""

	async def _fetch(self, collaborator: str, sql: str, *params: object) -> list[asyncpg.Record]:
		try:
			async with connection() as conn:
				return list(await conn.fetch(sql, *params))
		except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
			obs_metrics.inc_upstream_failure(collaborator)
			logger.warning("store.failed collaborator=%s error=%s", collaborator, type(exc).__name__)
			raise UpstreamUnavailable(collaborator) from exc

	async def _posts(self, builder: _QueryBuilder, limit: int) -> list[ContentItem]:
		sql, params = builder.render(limit)
		rows = await self._fetch("content_store", sql, *params)
		return [_item_from_record(row) for row in rows]

	async def query_by_text(
		self,
		text: str,
		filters: ContentFilters,
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		builder = _QueryBuilder()
		for token in _text_tokens(text):
			builder.add(
				"(p.content ILIKE {0} OR COALESCE(p.place_name, pl.name) ILIKE {0} OR pl.primary_genre ILIKE {0})",
				f"%{_escape_like(token)}%",
			)
		if filters.category:
			builder.add("lower(pl.primary_genre) = lower({})", filters.category)
		if filters.place_ids is not None:
			builder.add("p.place_id = ANY({}::text[])", sorted(filters.place_ids))
		if filters.author_ids is not None:
			builder.add("p.user_id::text = ANY({}::text[])", sorted(filters.author_ids))
		builder.keyset(cursor)
		return await self._posts(builder, limit)

	async def query_by_id_set(
		self,
		place_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		builder = _QueryBuilder()
		builder.add("p.place_id = ANY({}::text[])", sorted(place_ids))
		builder.keyset(cursor)
		return await self._posts(builder, limit)

	async def query_recent_excluding(
		self,
		excluded_author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		builder = _QueryBuilder(_PUBLIC_AUTHOR_JOIN)
		if excluded_author_ids:
			builder.add("NOT (p.user_id::text = ANY({}::text[]))", sorted(excluded_author_ids))
		builder.keyset(cursor)
		return await self._posts(builder, limit)

	async def query_by_authors(
		self,
		author_ids: AbstractSet[str],
		cursor: Optional[cursor_mod.CursorKey],
		limit: int,
	) -> list[ContentItem]:
		builder = _QueryBuilder()
		builder.add("p.user_id::text = ANY({}::text[])", sorted(author_ids))
		builder.keyset(cursor)
		return await self._posts(builder, limit)

	async def category_counts(self) -> list[tuple[str, int]]:
		rows = await self._fetch(
			"content_store",
			"""
			SELECT btrim(primary_genre) AS label, COUNT(*) AS places
			FROM places
			WHERE primary_genre IS NOT NULL AND btrim(primary_genre) <> ''
			GROUP BY btrim(primary_genre)
			ORDER BY places DESC, label ASC
			""",
		)
		return [(str(row["label"]), int(row["places"])) for row in rows]

	async def accepted_followees_of(self, viewer_id: str) -> set[str]:
		rows = await self._fetch(
			"social_graph",
			"SELECT followee_id::text AS id FROM follows WHERE follower_id::text = $1 AND status = $2",
			viewer_id,
			FollowStatus.ACCEPTED.value,
		)
		return {str(row["id"]) for row in rows}

	async def follow_count_of(self, viewer_id: str) -> int:
		rows = await self._fetch(
			"social_graph",
			"SELECT COUNT(*) AS total FROM follows WHERE follower_id::text = $1 AND status = $2",
			viewer_id,
			FollowStatus.ACCEPTED.value,
		)
		return int(rows[0]["total"]) if rows else 0

	async def recent_public_profiles(self, limit: int) -> list[Profile]:
		rows = await self._fetch(
			"profile_directory",
			"""
			SELECT id::text AS id, username, display_name, avatar_url, is_public, created_at
			FROM profiles
			WHERE is_public = TRUE
			ORDER BY created_at DESC NULLS LAST, id DESC
			LIMIT $1
			""",
			limit,
		)
		return [_profile_from_record(row) for row in rows]

	async def profiles_by_ids(self, ids: Iterable[str]) -> dict[str, Profile]:
		wanted = sorted(set(ids))
		if not wanted:
			return {}
		rows = await self._fetch(
			"profile_directory",
			"""
			SELECT id::text AS id, username, display_name, avatar_url, is_public, created_at
			FROM profiles
			WHERE id::text = ANY($1::text[])
			""",
			wanted,
		)
		return {str(row["id"]): _profile_from_record(row) for row in rows}

	async def links_for_landmark(self, landmark_id: str) -> list[PlaceLandmarkLink]:
		rows = await self._fetch(
			"geo_index",
			"""
			SELECT place_id, station_place_id, distance_m, rank, station_name
			FROM place_station_links
			WHERE station_place_id = $1
			""",
			landmark_id,
		)
		return [_link_from_record(row) for row in rows]

	async def links_for_places(self, place_ids: AbstractSet[str]) -> list[PlaceLandmarkLink]:
		if not place_ids:
			return []
		rows = await self._fetch(
			"geo_index",
			"""
			SELECT place_id, station_place_id, distance_m, rank, station_name
			FROM place_station_links
			WHERE place_id = ANY($1::text[])
			""",
			sorted(place_ids),
		)
		return [_link_from_record(row) for row in rows]

	async def search_landmarks(self, prefix: str, limit: int) -> list[Landmark]:
		needle = (prefix or "").strip()
		if not needle:
			return []
		rows = await self._fetch(
			"geo_index",
			"""
			SELECT station_place_id, MIN(station_name) AS station_name
			FROM place_station_links
			WHERE station_name ILIKE $1
			GROUP BY station_place_id
			ORDER BY length(MIN(station_name)) ASC, MIN(station_name) ASC
			LIMIT $2
			""",
			f"{_escape_like(needle)}%",
			limit,
		)
		return [Landmark(landmark_id=str(row["station_place_id"]), name=row["station_name"]) for row in rows]

	async def hub_landmarks(self, limit: int) -> list[HubLandmark]:
		rows = await self._fetch(
			"geo_index",
			"""
			SELECT station_place_id, station_name, priority
			FROM hub_stations
			WHERE region = $1 AND is_active = TRUE
			ORDER BY priority ASC, station_place_id ASC
			LIMIT $2
			""",
			settings.nudge_hub_region,
			limit,
		)
		return [
			HubLandmark(
				landmark_id=str(row["station_place_id"]),
				name=row["station_name"],
				priority=int(row["priority"] or 0),
			)
			for row in rows
		]


def _profile_from_record(record: asyncpg.Record) -> Profile:
	return Profile(
		id=str(record["id"]),
		username=record["username"],
		display_name=record["display_name"],
		avatar_url=record["avatar_url"],
		is_public=bool(record["is_public"]),
		created_at=record["created_at"],
	)


def _link_from_record(record: asyncpg.Record) -> PlaceLandmarkLink:
	distance = record["distance_m"]
	return PlaceLandmarkLink(
		place_id=str(record["place_id"]),
		landmark_id=str(record["station_place_id"]),
		distance_m=float(distance) if distance is not None else None,
		rank=record["rank"],
		landmark_name=record["station_name"],
	)


_MEMORY = _MemorySearchStore()
_POSTGRES = PostgresSearchStore()


def resolve_stores() -> SearchStores:
	backend = (settings.search_backend or "postgres").lower()
	if backend == "memory":
		store: object = _MEMORY
	elif backend == "postgres":
		store = _POSTGRES
	else:
		raise ValueError(f"unknown search backend: {settings.search_backend}")
	return SearchStores(content=store, social=store, profiles=store, geo=store)  # type: ignore[arg-type]


async def seed_memory_store(
	*,
	items: Iterable[ContentItem] | None = None,
	follows: Iterable[FollowEdge] | None = None,
	profiles: Iterable[Profile] | None = None,
	links: Iterable[PlaceLandmarkLink] | None = None,
	landmarks: Iterable[Landmark] | None = None,
	hubs: Iterable[HubLandmark] | None = None,
) -> None:
	await _MEMORY.seed(items=items, follows=follows, profiles=profiles, links=links, landmarks=landmarks, hubs=hubs)


async def reset_memory_state() -> None:
	await _MEMORY.reset()
