"""REST endpoints for search, landmark discovery and timelines."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from gourmap.domain.search import schemas
from gourmap.domain.search.exceptions import SearchError
from gourmap.domain.search.service import SearchService
from gourmap.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(tags=["search"])

_service = SearchService()


def _as_http_error(exc: SearchError) -> HTTPException:
	return HTTPException(status_code=exc.status_code, detail=exc.detail(), headers=exc.headers() or None)


def _viewer_id(user: Optional[AuthenticatedUser]) -> Optional[str]:
	return user.id if user is not None else None


@router.get("/search", response_model=schemas.TextSearchResponse)
async def search_text_endpoint(
	query: schemas.TextSearchQuery = Depends(),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.TextSearchResponse:
	try:
		return await _service.search_by_text(
			query.q,
			_viewer_id(user),
			follow_only=query.follow,
			cursor=query.cursor,
			limit=query.limit,
		)
	except SearchError as exc:
		raise _as_http_error(exc) from exc


@router.get("/search/landmark", response_model=schemas.LandmarkSearchResponse)
async def search_landmark_endpoint(
	query: schemas.LandmarkSearchQuery = Depends(),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.LandmarkSearchResponse:
	try:
		return await _service.search_by_landmark(
			query.landmark_id,
			query.q,
			radius_m=query.radius_m,
			viewer_id=_viewer_id(user),
			follow_only=query.follow,
			cursor=query.cursor,
			limit=query.limit,
		)
	except SearchError as exc:
		raise _as_http_error(exc) from exc


@router.get("/search/genres", response_model=schemas.GenresResponse)
async def genres_endpoint() -> schemas.GenresResponse:
	try:
		return await _service.list_genres()
	except SearchError as exc:
		raise _as_http_error(exc) from exc


@router.get("/search/suggest/landmark", response_model=schemas.LandmarkSuggestResponse)
async def suggest_landmark_endpoint(
	query: schemas.LandmarkSuggestQuery = Depends(),
) -> schemas.LandmarkSuggestResponse:
	try:
		return await _service.suggest_landmarks(query.q, query.limit)
	except SearchError as exc:
		raise _as_http_error(exc) from exc


@router.get("/timeline", response_model=schemas.TimelineResponse)
async def timeline_endpoint(
	query: schemas.TimelineQuery = Depends(),
	user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.TimelineResponse:
	try:
		return await _service.timeline_personalized(user.id, cursor=query.cursor, limit=query.limit)
	except SearchError as exc:
		raise _as_http_error(exc) from exc


@router.get("/timeline/discover", response_model=schemas.TimelineResponse)
async def timeline_discover_endpoint(
	query: schemas.TimelineQuery = Depends(),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.TimelineResponse:
	try:
		return await _service.timeline_discovery(_viewer_id(user), cursor=query.cursor, limit=query.limit)
	except SearchError as exc:
		raise _as_http_error(exc) from exc
