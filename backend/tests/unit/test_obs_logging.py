import json
import logging

import pytest

from enso.obs.logging import JSONLogFormatter, bind_context, reset_context
from enso.settings import settings


class _ListHandler(logging.Handler):
	"""Formats records while the request context is still bound."""

	def __init__(self) -> None:
		super().__init__()
		self.setFormatter(JSONLogFormatter())
		self.lines: list[dict] = []

	def emit(self, record: logging.LogRecord) -> None:
		self.lines.append(json.loads(self.format(record)))


@pytest.fixture
def http_log_lines():
	logger = logging.getLogger("enso.http")
	handler = _ListHandler()
	previous_level = logger.level
	logger.addHandler(handler)
	logger.setLevel(logging.INFO)
	try:
		yield handler.lines
	finally:
		logger.removeHandler(handler)
		logger.setLevel(previous_level)


def _record(**extra) -> logging.LogRecord:
	record = logging.LogRecord("enso.test", logging.INFO, __file__, 1, "reference lookup", None, None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_redacts_user_content():
	line = JSONLogFormatter().format(_record(query="secret plans", auth_token="abc", ref_type="user"))
	payload = json.loads(line)

	assert payload["msg"] == "reference lookup"
	assert payload["query"] == "[redacted]"
	assert payload["auth_token"] == "[redacted]"
	assert payload["ref_type"] == "user"


def test_request_context_is_bound_and_reset():
	tokens = bind_context(request_id="req-1", route="/presence", user_id="u1")
	try:
		payload = json.loads(JSONLogFormatter().format(_record()))
		assert payload["request_id"] == "req-1"
		assert payload["route"] == "/presence"
		assert payload["user_id"] == "u1"
	finally:
		reset_context(tokens)

	payload = json.loads(JSONLogFormatter().format(_record()))
	assert "request_id" not in payload
	assert "user_id" not in payload


@pytest.mark.asyncio
async def test_request_log_carries_route_template(api_client, http_log_lines):
	await api_client.get("/presence/chat/c1", headers={"X-User-Id": "u2"})

	entry = next(line for line in http_log_lines if line["msg"] == "http_request")
	assert entry["route"] == "/presence/{location}/{location_id}"
	assert entry["user_id"] == "u2"
	assert entry["status"] == 200


@pytest.mark.asyncio
async def test_request_log_ignores_user_header_outside_dev(api_client, http_log_lines, monkeypatch):
	monkeypatch.setattr(settings, "environment", "production")

	await api_client.get("/health/live", headers={"X-User-Id": "spoofed"})

	entry = next(line for line in http_log_lines if line["msg"] == "http_request")
	assert "user_id" not in entry
	assert entry["route"] == "/health/live"
