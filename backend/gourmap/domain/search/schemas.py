"""Pydantic schemas for search, landmark discovery and timeline APIs.

Range checks on ``limit`` and ``radius_m`` happen in the service so that callers
outside HTTP get the same InvalidInput errors.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from gourmap.domain.search import models, policy


class TextSearchQuery(BaseModel):
	q: str = Field(default="", max_length=200, description="Raw search input, resolved on commit")
	follow: bool = Field(default=False, description="Only posts by the viewer and people they follow")
	cursor: Optional[str] = Field(default=None, description="Opaque cursor for pagination")
	limit: int = Field(default=policy.DEFAULT_LIMIT)


class LandmarkSearchQuery(BaseModel):
	landmark_id: str = Field(default="", description="Landmark (station) identifier")
	q: str = Field(default="", max_length=200)
	radius_m: Optional[int] = Field(default=None, description="Search radius in metres; configured default when omitted")
	follow: bool = Field(default=False)
	cursor: Optional[str] = Field(default=None)
	limit: int = Field(default=policy.DEFAULT_LIMIT)


class TimelineQuery(BaseModel):
	cursor: Optional[str] = Field(default=None)
	limit: int = Field(default=policy.DEFAULT_LIMIT)


class LandmarkSuggestQuery(BaseModel):
	q: str = Field(default="", max_length=80)
	limit: int = Field(default=policy.DEFAULT_SUGGEST_LIMIT)


class AuthorSummary(BaseModel):
	id: str
	username: Optional[str] = None
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None

	@classmethod
	def from_profile(cls, profile: models.Profile) -> "AuthorSummary":
		return cls(
			id=profile.id,
			username=profile.username,
			display_name=profile.display_name,
			avatar_url=profile.avatar_url,
		)


class PostResult(BaseModel):
	id: str
	author_id: str
	created_at: datetime
	visited_on: Optional[date] = None
	body: str = ""
	place_id: Optional[str] = None
	place_name: Optional[str] = None
	category: Optional[str] = None
	recommend_score: Optional[float] = None
	price_yen: Optional[int] = None
	price_range: Optional[str] = None
	author: Optional[AuthorSummary] = None
	landmark_distance_m: Optional[float] = None
	landmark_walk_minutes: Optional[int] = None


class SuggestionOut(BaseModel):
	title: str
	subtitle: Optional[str] = None
	insert_at: int = Field(..., ge=0)
	profiles: list[AuthorSummary] = Field(default_factory=list)


class NudgeOut(BaseModel):
	landmark_id: str
	landmark_name: Optional[str] = None
	sample_post_id: str
	kind: Literal["nearby", "hub"] = "nearby"
	shared_places: Optional[int] = Field(default=None, ge=0)


class TextSearchResponse(BaseModel):
	items: list[PostResult]
	next_cursor: Optional[str] = None
	category: Optional[str] = Field(default=None, description="Category extracted from the input")
	text: str = Field(default="", description="Input left after the category token was removed")


class LandmarkSearchResponse(BaseModel):
	items: list[PostResult]
	next_cursor: Optional[str] = None
	landmark_id: str
	landmark_name: Optional[str] = None
	radius_m: int
	category: Optional[str] = None
	text: str = ""
	nudge: Optional[list[NudgeOut]] = None


class TimelineResponse(BaseModel):
	items: list[PostResult]
	next_cursor: Optional[str] = None
	suggestion: Optional[SuggestionOut] = None


class GenreCount(BaseModel):
	label: str
	places: int = Field(..., ge=0)


class GenresResponse(BaseModel):
	genres: list[GenreCount]


class LandmarkOut(BaseModel):
	landmark_id: str
	name: Optional[str] = None


class LandmarkSuggestResponse(BaseModel):
	landmarks: list[LandmarkOut]
