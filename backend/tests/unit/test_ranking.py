from datetime import date, datetime, timedelta, timezone

from gourmap.domain.search import ranking
from gourmap.domain.search.models import ContentItem

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _item(item_id, author="u1", score=None, minutes=0, visited=None):
	return ContentItem(
		id=item_id,
		author_id=author,
		created_at=BASE + timedelta(minutes=minutes),
		recommend_score=score,
		visited_on=visited,
	)


def test_follow_bonus_lifts_followed_author():
	a = _item("a", author="stranger", score=8)
	b = _item("b", author="friend", score=6)
	ordered = ranking.rank([a, b], {"friend"}, follow_bonus=2.5)
	assert [item.id for item in ordered] == ["b", "a"]


def test_without_follow_relevance_wins():
	a = _item("a", author="stranger", score=8)
	b = _item("b", author="friend", score=6)
	assert [item.id for item in ranking.rank([b, a], set())] == ["a", "b"]


def test_scores_are_clamped():
	loud = _item("loud", author="stranger", score=15)
	followed = _item("followed", author="friend", score=9)
	negative = _item("negative", author="stranger", score=-4)
	missing = _item("missing", author="stranger", score=None)
	assert ranking.final_score(loud, set()) == 10.0
	assert ranking.final_score(negative, set()) == 0.0
	assert ranking.final_score(missing, set()) == 0.0
	ordered = ranking.rank([loud, followed, negative], {"friend"})
	assert [item.id for item in ordered] == ["followed", "loud", "negative"]


def test_tie_breaks_on_visit_date_then_creation_then_id():
	day = date(2024, 4, 20)
	older_visit = _item("v1", score=5, minutes=10, visited=date(2024, 4, 1))
	no_visit = _item("v0", score=5, minutes=20)
	earlier = _item("c1", score=5, minutes=1, visited=day)
	later = _item("c2", score=5, minutes=2, visited=day)
	same_time_low = _item("b9", score=5, minutes=2, visited=day)
	ordered = ranking.rank([no_visit, older_visit, earlier, same_time_low, later], set())
	assert [item.id for item in ordered] == ["c2", "b9", "c1", "v1", "v0"]


def test_rank_is_permutation_and_idempotent():
	items = [
		_item(f"p{i}", author=f"u{i % 3}", score=(i * 7) % 11, minutes=i, visited=date(2024, 4, 1 + i % 5))
		for i in range(12)
	]
	following = {"u1"}
	once = ranking.rank(items, following)
	twice = ranking.rank(once, following)
	assert sorted(item.id for item in once) == sorted(item.id for item in items)
	assert [item.id for item in once] == [item.id for item in twice]
	assert [item.id for item in items] == [f"p{i}" for i in range(12)]


def test_chronological_orders_newest_first():
	items = [_item("b", minutes=1), _item("a", minutes=1), _item("c", minutes=3)]
	assert [item.id for item in ranking.chronological(items)] == ["c", "b", "a"]
