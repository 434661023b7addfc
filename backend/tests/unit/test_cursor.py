import base64
from datetime import datetime, timedelta, timezone

import pytest

from gourmap.domain.search import cursor
from gourmap.domain.search.exceptions import InvalidInput
from gourmap.domain.search.models import ContentItem

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _item(item_id, minutes):
	return ContentItem(id=item_id, author_id="u1", created_at=BASE + timedelta(minutes=minutes))


def test_cursor_round_trips_to_keyset():
	token = cursor.encode_cursor(BASE, "post-9")
	key = cursor.decode_cursor(token)
	assert key == cursor.CursorKey(created_at=BASE, item_id="post-9")


def test_missing_cursor_means_first_page():
	assert cursor.decode_cursor(None) is None
	assert cursor.decode_cursor("") is None


@pytest.mark.parametrize(
	"token",
	[
		"not base64 !!",
		base64.urlsafe_b64encode(b"plain text").decode("ascii"),
		base64.urlsafe_b64encode(b'{"t": "yesterday", "id": "x"}').decode("ascii"),
		base64.urlsafe_b64encode(b'{"t": "2024-05-01T12:00:00+00:00"}').decode("ascii"),
		base64.urlsafe_b64encode(b'{"t": "2024-05-01T12:00:00+00:00", "id": ""}').decode("ascii"),
		base64.urlsafe_b64encode(b'{"t": "2024-05-01T12:00:00", "id": "x"}').decode("ascii"),
	],
)
def test_malformed_cursor_is_invalid_input(token):
	with pytest.raises(InvalidInput) as exc_info:
		cursor.decode_cursor(token)
	assert exc_info.value.field == "cursor"
	assert exc_info.value.detail() == {"reason": "bad_cursor", "field": "cursor"}


def test_is_before_breaks_timestamp_ties_on_id():
	key = cursor.CursorKey(created_at=BASE, item_id="m")
	assert cursor.is_before(_item("a", 0), key)
	assert not cursor.is_before(_item("m", 0), key)
	assert not cursor.is_before(_item("z", 0), key)
	assert cursor.is_before(_item("z", -1), key)
	assert cursor.is_before(_item("z", 5), None)


def test_next_cursor_points_at_oldest_item_of_full_window():
	window = [_item("b", 3), _item("a", 1), _item("c", 2)]
	token = cursor.next_cursor(window, 3)
	assert cursor.decode_cursor(token) == cursor.CursorKey(created_at=BASE + timedelta(minutes=1), item_id="a")


def test_short_window_is_terminal():
	assert cursor.next_cursor([_item("a", 1)], 2) is None
	assert cursor.next_cursor([], 1) is None
