import pytest

from gourmap.domain.search import keywords
from gourmap.domain.search.keywords import DEFAULT_ALIASES, KeywordMatch, KeywordResolver, normalize
from gourmap.domain.search.models import AliasEntry


@pytest.fixture
def resolver() -> KeywordResolver:
	return KeywordResolver(DEFAULT_ALIASES)


def test_direct_hit_extracts_category_and_keeps_rest(resolver):
	assert resolver.resolve("ラーメン 渋谷", {"ラーメン", "寿司"}) == KeywordMatch("ラーメン", "渋谷")


def test_alias_hit_maps_to_canonical(resolver):
	assert resolver.resolve("やきにく 新宿", {"焼肉"}) == KeywordMatch("焼肉", "新宿")


def test_direct_hit_outranks_alias_hit(resolver):
	match = resolver.resolve("すし ラーメン", {"寿司", "ラーメン"})
	assert match == KeywordMatch("ラーメン", "すし")


def test_longer_alias_wins_between_alias_hits(resolver):
	# 鮨 scores 500 + 1*10 + 5, 喫茶店 scores 500 + 3*10 + 3
	match = resolver.resolve("鮨 喫茶店", {"寿司", "カフェ"})
	assert match == KeywordMatch("カフェ", "鮨")


def test_alias_for_unavailable_label_is_ignored(resolver):
	assert resolver.resolve("やきにく", {"寿司"}) == KeywordMatch(None, "やきにく")


def test_empty_input(resolver):
	assert resolver.resolve("", {"寿司"}) == KeywordMatch(None, "")
	assert resolver.resolve("   ", {"寿司"}) == KeywordMatch(None, "")
	assert resolver.resolve(None, {"寿司"}) == KeywordMatch(None, "")


def test_empty_available_labels_never_guesses(resolver):
	assert resolver.resolve("  ラーメン 渋谷 ", set()) == KeywordMatch(None, "ラーメン 渋谷")


def test_full_width_space_and_case_are_folded(resolver):
	assert resolver.resolve("ラーメン　渋谷", {"ラーメン"}) == KeywordMatch("ラーメン", "渋谷")
	assert resolver.resolve("Coffee  Shibuya", {"カフェ"}) == KeywordMatch("カフェ", "shibuya")


def test_returns_available_label_spelling(resolver):
	assert resolver.resolve("bar ebisu", {"Bar"}) == KeywordMatch("Bar", "ebisu")


def test_removes_exactly_one_occurrence(resolver):
	first = resolver.resolve("ラーメン ラーメン", {"ラーメン"})
	assert first == KeywordMatch("ラーメン", "ラーメン")
	second = resolver.resolve(first.rest, {"ラーメン"})
	assert second == KeywordMatch("ラーメン", "")


def test_colliding_alias_prefers_higher_priority():
	resolver = KeywordResolver([AliasEntry("A", ("xx",), 1), AliasEntry("B", ("xx",), 5)])
	assert resolver.resolve("xx", {"A", "B"}).matched == "B"


def test_full_tie_between_aliases_keeps_first_entry():
	resolver = KeywordResolver([AliasEntry("A", ("xx",), 3), AliasEntry("B", ("xx",), 3)])
	assert resolver.resolve("xx", {"A", "B"}).matched == "A"


def test_canonical_label_claims_its_key_over_earlier_alias():
	resolver = KeywordResolver([AliasEntry("A", ("cafe",), 9), AliasEntry("cafe", (), 1)])
	# "cafe" now points at its own canonical, which is not available here.
	assert resolver.resolve("cafe", {"A"}) == KeywordMatch(None, "cafe")
	assert resolver.resolve("cafe", {"A", "Cafe"}) == KeywordMatch("Cafe", "")


@pytest.mark.parametrize(
	"raw",
	[
		"ラーメン 渋谷",
		"すし 鮨 寿司 新宿",
		"やきにく ホルモン 焼肉",
		"喫茶 coffee bar 恵比寿",
		"pasta ピザ",
	],
)
def test_matches_stay_in_available_set_and_refinement_terminates(resolver, raw):
	available = {"寿司", "焼肉", "カフェ", "イタリアン"}
	text = raw
	previous_tokens = len(normalize(text).split(" "))
	for _ in range(previous_tokens + 1):
		match = resolver.resolve(text, available)
		if match.matched is None:
			break
		assert match.matched in available
		remaining = len(match.rest.split(" ")) if match.rest else 0
		assert remaining == previous_tokens - 1
		previous_tokens = remaining
		text = match.rest
	else:
		pytest.fail("resolution never ran out of tokens")


def test_load_alias_entries_from_yaml(tmp_path):
	path = tmp_path / "aliases.yml"
	path.write_text(
		"categories:\n"
		"  - canonical: 焼肉\n"
		"    priority: 7\n"
		"    aliases: [やきにく, ' ']\n"
		"  - aliases: [orphan]\n",
		encoding="utf-8",
	)
	entries = keywords.load_alias_entries(path)
	assert entries == [AliasEntry("焼肉", ("やきにく",), 7)]


def test_load_alias_entries_rejects_non_mapping(tmp_path):
	path = tmp_path / "aliases.yml"
	path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(ValueError):
		keywords.load_alias_entries(path)


def test_shipped_alias_file_builds_resolver():
	keywords.get_resolver.cache_clear()
	try:
		resolver = keywords.get_resolver()
		assert resolver.resolve("中華そば", {"ラーメン"}).matched == "ラーメン"
	finally:
		keywords.get_resolver.cache_clear()
