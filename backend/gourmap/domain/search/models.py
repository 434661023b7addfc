"""Domain models backing search, landmark discovery and timelines."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class FollowStatus(str, Enum):
	"""Follow edge states tracked in the database."""

	PENDING = "pending"
	ACCEPTED = "accepted"


@dataclass(slots=True)
class ContentItem:
	"""A published visit post as returned from the content store."""

	id: str
	author_id: str
	created_at: datetime
	body: str = ""
	visited_on: Optional[date] = None
	place_id: Optional[str] = None
	place_name: Optional[str] = None
	category: Optional[str] = None
	recommend_score: Optional[float] = None
	price_yen: Optional[int] = None
	price_range: Optional[str] = None


@dataclass(slots=True)
class FollowEdge:
	follower_id: str
	followee_id: str
	status: FollowStatus = FollowStatus.ACCEPTED


@dataclass(slots=True)
class PlaceLandmarkLink:
	"""Precomputed distance between a place and a landmark (backfilled out of band)."""

	place_id: str
	landmark_id: str
	distance_m: Optional[float] = None
	rank: Optional[int] = None
	landmark_name: Optional[str] = None


@dataclass(slots=True)
class PlaceDistance:
	place_id: str
	distance_m: Optional[float] = None

	def walk_minutes(self, meters_per_minute: float = 80.0) -> Optional[int]:
		return walk_minutes(self.distance_m, meters_per_minute)


@dataclass(slots=True)
class Landmark:
	landmark_id: str
	name: Optional[str] = None


@dataclass(slots=True)
class HubLandmark:
	"""A major landmark offered as a fallback alternative; lower priority comes first."""

	landmark_id: str
	name: Optional[str] = None
	priority: int = 0


@dataclass(slots=True)
class AliasEntry:
	canonical: str
	aliases: tuple[str, ...] = ()
	priority: int = 0


@dataclass(slots=True)
class Profile:
	id: str
	username: Optional[str] = None
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None
	is_public: bool = True
	created_at: Optional[datetime] = None


@dataclass(slots=True)
class ContentFilters:
	"""Filters shared by every page of a text search."""

	category: Optional[str] = None
	place_ids: Optional[frozenset[str]] = None
	author_ids: Optional[frozenset[str]] = None


@dataclass(slots=True)
class SuggestionBlock:
	"""Ephemeral follow suggestions spliced into the first timeline page."""

	title: str
	subtitle: Optional[str]
	profiles: list[Profile] = field(default_factory=list)
	insert_at: int = 1


@dataclass(slots=True)
class LandmarkNudge:
	landmark_id: str
	landmark_name: Optional[str]
	sample_post_id: str
	kind: str = "nearby"
	shared_places: Optional[int] = None


def walk_minutes(distance_m: Optional[float], meters_per_minute: float = 80.0) -> Optional[int]:
	"""Walking time shown next to a distance, never below one minute."""

	if distance_m is None or not math.isfinite(distance_m) or distance_m < 0:
		return None
	return max(1, math.ceil(distance_m / meters_per_minute))
