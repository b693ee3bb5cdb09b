from datetime import datetime, timedelta, timezone

import pytest

from enso.domain.references import formatters
from enso.domain.references.schemas import ReferenceType

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
	("delta", "expected"),
	[
		(timedelta(seconds=20), "just now"),
		(timedelta(minutes=5), "5m ago"),
		(timedelta(minutes=59), "59m ago"),
		(timedelta(hours=3, minutes=10), "3h ago"),
		(timedelta(days=2, hours=1), "2d ago"),
	],
)
def test_format_relative_time(delta, expected):
	assert formatters.format_relative_time((NOW - delta).isoformat(), now=NOW) == expected


def test_format_relative_time_accepts_zulu_and_epoch_ms():
	assert formatters.format_relative_time("2024-01-01T11:55:00Z", now=NOW) == "5m ago"
	epoch_ms = int((NOW - timedelta(hours=2)).timestamp() * 1000)
	assert formatters.format_relative_time(epoch_ms, now=NOW) == "2h ago"


def test_format_relative_time_missing_or_garbage():
	assert formatters.format_relative_time(None, now=NOW) is None
	assert formatters.format_relative_time("yesterday-ish", now=NOW) is None


def test_user_reference_full_row():
	ref = formatters.format_user(
		{"id": 7, "full_name": "Ada Lovelace", "email": "ada@example.com", "role": "admin"},
		NOW,
	)
	assert ref.id == "7"
	assert ref.type is ReferenceType.USER
	assert ref.title == "Ada Lovelace"
	assert ref.preview == "ada@example.com"
	assert ref.metadata == {"icon": "user", "badge": "admin", "source": "team"}


def test_user_reference_missing_fields_use_sentinel():
	ref = formatters.format_user({"id": "u9"}, NOW)
	assert ref.title == formatters.UNKNOWN
	assert ref.preview == formatters.UNKNOWN
	assert "badge" not in ref.metadata


def test_message_reference_truncates_and_names_sender():
	content = "x" * 60
	ref = formatters.format_message(
		{
			"id": "m1",
			"content": content,
			"sender": {"full_name": "Grace"},
			"created_at": (NOW - timedelta(minutes=3)).isoformat(),
		},
		NOW,
	)
	assert ref.title == "x" * 50 + "..."
	assert ref.preview == "Grace · 3m ago"
	assert ref.metadata == {"icon": "message", "timestamp": "3m ago"}


def test_message_reference_without_sender_or_time():
	ref = formatters.format_message({"id": "m2", "content": "hi"}, NOW)
	assert ref.title == "hi"
	assert ref.preview == formatters.UNKNOWN
	assert ref.metadata == {"icon": "message"}


def test_chat_file_topic_defaults():
	chat = formatters.format_chat({"id": "c1", "title": "Planning"}, NOW)
	assert chat.preview == "0 messages"

	file_ref = formatters.format_file({"id": "f1", "name": "spec.pdf", "size_formatted": "2 MB"}, NOW)
	assert file_ref.preview == f"2 MB · {formatters.UNKNOWN}"
	assert file_ref.metadata == {"icon": "file"}

	topic = formatters.format_topic({"id": "t1", "name": "design", "reference_count": 4, "category": "eng"}, NOW)
	assert topic.title == "#design"
	assert topic.preview == "4 references"
	assert topic.metadata == {"icon": "hash", "badge": "eng"}


def test_rows_without_id_are_skipped():
	for formatter in formatters.FORMATTERS.values():
		assert formatter({"title": "orphan"}, NOW) is None


def test_new_link_reference():
	ref = formatters.new_link_reference("https://example.com")
	assert ref.id == formatters.NEW_LINK_ID
	assert ref.title == "https://example.com"
	assert ref.preview == "Add new link"
	assert ref.metadata == {"icon": "link", "source": "web"}
