"""Keyword → canonical category resolution for committed search input.

The alias dictionary is curated by operators (script variants, misspellings,
synonyms). It is loaded once and the resulting index is read-only, so a single
resolver instance is shared by every request.

Resolution runs once per committed search (Enter / search button), never per
keystroke: partial tokens would otherwise flicker between categories.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Mapping, Optional

import yaml

from gourmap.domain.search.models import AliasEntry
from gourmap.settings import settings

logger = logging.getLogger(__name__)

DIRECT_HIT_BASE = 1000
ALIAS_HIT_BASE = 500
ALIAS_LENGTH_WEIGHT = 10

_WHITESPACE = re.compile(r"\s+")

DEFAULT_ALIASES: tuple[AliasEntry, ...] = (
	AliasEntry("焼肉", ("やきにく", "焼き肉", "ホルモン"), 5),
	AliasEntry("寿司", ("すし", "鮨"), 5),
	AliasEntry("ラーメン", ("らーめん", "拉麺", "中華そば"), 5),
	AliasEntry("カフェ", ("喫茶", "喫茶店", "coffee", "café"), 3),
	AliasEntry("居酒屋", ("いざかや", "飲み屋"), 4),
	AliasEntry("イタリアン", ("いたりあん", "パスタ", "ピザ"), 4),
	AliasEntry("中華", ("ちゅうか", "チャイナ", "中国料理"), 4),
	AliasEntry("和食", ("わしょく", "日本食", "割烹", "定食"), 3),
	AliasEntry("フレンチ", ("ふれんち", "ビストロ"), 3),
	AliasEntry("バー", ("bar", "ばー"), 2),
)


def normalize(value: Optional[str]) -> str:
	"""Trim, fold ideographic spaces, lowercase and collapse whitespace."""

	text = (value or "").replace("\u3000", " ").strip().lower()
	return _WHITESPACE.sub(" ", text)


@dataclass(slots=True, frozen=True)
class _AliasTarget:
	canonical: str
	priority: int
	length: int


@dataclass(slots=True, frozen=True)
class KeywordMatch:
	matched: Optional[str]
	rest: str


class KeywordResolver:
	def __init__(self, entries: Iterable[AliasEntry]) -> None:
		index: dict[str, _AliasTarget] = {}
		for entry in entries:
			canonical_key = normalize(entry.canonical)
			if canonical_key:
				# A canonical label always claims its own key, even over an earlier alias.
				index[canonical_key] = _AliasTarget(entry.canonical, entry.priority, len(canonical_key))
			for raw in entry.aliases:
				key = normalize(raw)
				if not key:
					continue
				candidate = _AliasTarget(canonical=entry.canonical, priority=entry.priority, length=len(key))
				previous = index.get(key)
				if previous is None or candidate.length > previous.length or (
					candidate.length == previous.length and candidate.priority > previous.priority
				):
					index[key] = candidate
		self._index: Mapping[str, _AliasTarget] = index

	def __len__(self) -> int:
		return len(self._index)

	def resolve(self, raw_input: Optional[str], available_labels: Iterable[str]) -> KeywordMatch:
		"""Pull at most one category token out of the input.

		Direct hits on an available label always outrank alias hits; among alias
		hits longer aliases win, then higher priority. The returned label is the
		spelling found in ``available_labels``.
		"""

		normalized = normalize(raw_input)
		if not normalized:
			return KeywordMatch(matched=None, rest="")
		trimmed = (raw_input or "").strip()

		available: dict[str, str] = {}
		for label in available_labels:
			key = normalize(label)
			if key and key not in available:
				available[key] = label
		if not available:
			return KeywordMatch(matched=None, rest=trimmed)

		tokens = normalized.split(" ")
		best_score = -1
		best_index: Optional[int] = None
		best_label: Optional[str] = None
		for position, token in enumerate(tokens):
			if token in available:
				score = DIRECT_HIT_BASE + len(token)
				label = available[token]
			else:
				target = self._index.get(token)
				if target is None:
					continue
				canonical_key = normalize(target.canonical)
				if canonical_key not in available:
					continue
				score = ALIAS_HIT_BASE + target.length * ALIAS_LENGTH_WEIGHT + target.priority
				label = available[canonical_key]
			if score > best_score:
				best_score = score
				best_index = position
				best_label = label

		if best_index is None:
			return KeywordMatch(matched=None, rest=trimmed)
		remaining = tokens[:best_index] + tokens[best_index + 1 :]
		return KeywordMatch(matched=best_label, rest=" ".join(remaining))


def load_alias_entries(path: str | Path) -> list[AliasEntry]:
	with open(path, "r", encoding="utf-8") as handle:
		loaded = yaml.safe_load(handle) or {}
	if not isinstance(loaded, dict):
		raise ValueError("keyword alias config must be a mapping")
	raw_entries = loaded.get("categories", [])
	if not isinstance(raw_entries, list):
		raise ValueError("keyword alias config: 'categories' must be a list")

	entries: list[AliasEntry] = []
	for item in raw_entries:
		if not isinstance(item, dict) or not item.get("canonical"):
			continue
		aliases = item.get("aliases") or []
		entries.append(
			AliasEntry(
				canonical=str(item["canonical"]),
				aliases=tuple(str(alias) for alias in aliases if str(alias).strip()),
				priority=int(item.get("priority", 0)),
			)
		)
	return entries


@lru_cache(maxsize=1)
def get_resolver() -> KeywordResolver:
	"""Process-wide resolver, built from the configured alias file on first use."""

	path = settings.keyword_aliases_file()
	if path.exists():
		entries: Iterable[AliasEntry] = load_alias_entries(path)
		logger.info("keywords.loaded path=%s", path)
	else:
		entries = DEFAULT_ALIASES
		logger.info("keywords.defaults path=%s missing", path)
	return KeywordResolver(entries)
