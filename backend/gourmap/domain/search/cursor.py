"""Opaque keyset cursor shared by every listing endpoint.

A cursor points at ``(created_at, id)`` of the oldest item of the page window
that was fetched. The next page holds items strictly before that key, so rows
sharing a timestamp are never dropped across a page boundary.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from gourmap.domain.search.exceptions import InvalidInput
from gourmap.domain.search.models import ContentItem


@dataclass(slots=True, frozen=True)
class CursorKey:
	created_at: datetime
	item_id: str


def encode_cursor(created_at: datetime, item_id: str) -> str:
	payload = {"t": created_at.isoformat(), "id": item_id}
	blob = json.dumps(payload, separators=(",", ":"))
	return base64.urlsafe_b64encode(blob.encode("utf-8")).decode("ascii")


def decode_cursor(value: Optional[str]) -> Optional[CursorKey]:
	if value is None or value == "":
		return None
	try:
		decoded = base64.urlsafe_b64decode(value.encode("ascii")).decode("utf-8")
		data = json.loads(decoded)
		created_at = datetime.fromisoformat(str(data["t"]))
		item_id = str(data["id"])
	except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
		raise InvalidInput("bad_cursor", field="cursor") from exc
	if not item_id or created_at.tzinfo is None:
		raise InvalidInput("bad_cursor", field="cursor")
	return CursorKey(created_at=created_at, item_id=item_id)


def is_before(item: ContentItem, cursor: Optional[CursorKey]) -> bool:
	if cursor is None:
		return True
	return (item.created_at, item.id) < (cursor.created_at, cursor.item_id)


def next_cursor(window: Sequence[ContentItem], limit: int) -> Optional[str]:
	"""Cursor for the page after ``window``; None once the window ran short."""

	if len(window) < limit or not window:
		return None
	oldest = min(window, key=lambda item: (item.created_at, item.id))
	return encode_cursor(oldest.created_at, oldest.id)
