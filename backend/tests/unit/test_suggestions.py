from datetime import datetime, timedelta, timezone

import pytest

from gourmap.domain.search.models import Profile
from gourmap.domain.search.suggestions import SuggestionInjector

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


class StubDirectory:
	def __init__(self, profiles):
		self.profiles = profiles
		self.calls = 0

	async def recent_public_profiles(self, limit):
		self.calls += 1
		ordered = sorted(self.profiles, key=lambda profile: profile.created_at, reverse=True)
		return [profile for profile in ordered if profile.is_public][:limit]

	async def profiles_by_ids(self, ids):
		return {profile.id: profile for profile in self.profiles if profile.id in set(ids)}


def _profiles(count):
	return [Profile(id=f"u{i}", username=f"user{i}", created_at=BASE + timedelta(days=i)) for i in range(count)]


@pytest.mark.asyncio
async def test_zero_follows_get_find_people_block():
	injector = SuggestionInjector(StubDirectory(_profiles(3)))
	block = await injector.maybe_inject(0, {"u2"})
	assert block is not None
	assert block.title == "Find people to follow"
	assert block.insert_at == 1
	assert [profile.id for profile in block.profiles] == ["u1", "u0"]


@pytest.mark.asyncio
async def test_one_follow_gets_alternate_title():
	block = await SuggestionInjector(StubDirectory(_profiles(2))).maybe_inject(1, {"me"})
	assert block is not None
	assert block.title == "People you might also like"


@pytest.mark.asyncio
async def test_established_viewer_gets_nothing_and_store_is_not_read():
	directory = StubDirectory(_profiles(3))
	assert await SuggestionInjector(directory).maybe_inject(2, set()) is None
	assert directory.calls == 0


@pytest.mark.asyncio
async def test_cap_applies_after_exclusions():
	directory = StubDirectory(_profiles(12))
	injector = SuggestionInjector(directory, max_profiles=8, insert_at=2)
	block = await injector.maybe_inject(0, {"u11", "u10"})
	assert block is not None
	assert block.insert_at == 2
	assert [profile.id for profile in block.profiles] == [f"u{i}" for i in range(9, 1, -1)]


@pytest.mark.asyncio
async def test_empty_pool_after_exclusion_yields_none():
	injector = SuggestionInjector(StubDirectory(_profiles(2)))
	assert await injector.maybe_inject(0, {"u0", "u1"}) is None


@pytest.mark.asyncio
async def test_private_profiles_are_never_suggested():
	profiles = _profiles(2)
	profiles[1].is_public = False
	block = await SuggestionInjector(StubDirectory(profiles)).maybe_inject(0, set())
	assert [profile.id for profile in block.profiles] == ["u0"]
