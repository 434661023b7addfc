import json
import logging

from gourmap.obs import logging as obs_logging


def _record(msg="search.text", **extra):
	record = logging.LogRecord("gourmap.test", logging.INFO, __file__, 1, msg, (), None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_json_formatter_binds_request_context():
	tokens = obs_logging.bind_context(request_id="req-1", route="/search", user_id="viewer")
	try:
		payload = json.loads(obs_logging.JSONLogFormatter().format(_record(results=3)))
	finally:
		obs_logging.reset_context(tokens)

	assert payload["msg"] == "search.text"
	assert payload["request_id"] == "req-1"
	assert payload["route"] == "/search"
	assert payload["user_id"] == "viewer"
	assert payload["results"] == 3
	assert obs_logging.current_request_id() is None


def test_json_formatter_redacts_sensitive_fields():
	record = _record(authorization="Bearer abc", body="濃厚 豚骨", latitude=35.65)
	payload = json.loads(obs_logging.JSONLogFormatter().format(record))
	assert payload["authorization"] == "[redacted]"
	assert payload["body"] == "[redacted]"
	assert payload["latitude"] == "[redacted]"


def test_long_values_are_truncated_and_unset_context_is_skipped():
	tokens = obs_logging.bind_context(request_id="req-2", user_id=None)
	try:
		payload = json.loads(obs_logging.JSONLogFormatter().format(_record(landmark="x" * 300)))
	finally:
		obs_logging.reset_context(tokens)

	assert payload["request_id"] == "req-2"
	assert "user_id" not in payload
	assert payload["landmark"] == "x" * 256 + "…"
