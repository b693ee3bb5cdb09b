"""Turn raw search rows into display-ready references.

Every formatter follows the same conventions for missing data:

* display text (names, titles, emails, sizes, file types) falls back to
  ``UNKNOWN``;
* counts fall back to ``0``;
* optional metadata values (badge, timestamp) are left out of ``metadata``
  instead of being set to ``None``.

Rows without an ``id`` cannot be referenced and yield ``None``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from enso.domain.references.schemas import Reference, ReferenceType

UNKNOWN = "Unknown"
TITLE_MAX_LENGTH = 50
NEW_LINK_ID = "new-link"

Row = Mapping[str, Any]
Formatter = Callable[[Row, Optional[datetime]], Optional[Reference]]


def truncate(text: str, length: int) -> str:
	if len(text) <= length:
		return text
	return f"{text[:length]}..."


def _text(value: Any) -> str:
	if value is None:
		return UNKNOWN
	text = str(value).strip()
	return text or UNKNOWN


def _count(value: Any) -> int:
	try:
		return int(value or 0)
	except (TypeError, ValueError):
		return 0


def _parse_timestamp(value: Any) -> Optional[datetime]:
	if value is None or value == "":
		return None
	if isinstance(value, datetime):
		parsed = value
	elif isinstance(value, (int, float)):
		# epoch milliseconds, as the chat API serialises them
		parsed = datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
	else:
		try:
			parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
		except ValueError:
			return None
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


def format_relative_time(value: Any, *, now: Optional[datetime] = None) -> Optional[str]:
	"""Render a timestamp as ``just now`` / ``5m ago`` / ``3h ago`` / ``2d ago``.

	Returns None for missing or unparseable input.
	"""
	parsed = _parse_timestamp(value)
	if parsed is None:
		return None
	current = now or datetime.now(timezone.utc)
	minutes = int((current - parsed).total_seconds() // 60)
	if minutes < 1:
		return "just now"
	if minutes < 60:
		return f"{minutes}m ago"
	hours = minutes // 60
	if hours < 24:
		return f"{hours}h ago"
	return f"{hours // 24}d ago"


def _metadata(icon: str, **values: Any) -> dict[str, Any]:
	metadata: dict[str, Any] = {"icon": icon}
	for key, value in values.items():
		if value is None or value == "":
			continue
		metadata[key] = value
	return metadata


def _row_id(row: Row) -> Optional[str]:
	raw = row.get("id")
	if raw is None or str(raw) == "":
		return None
	return str(raw)


def format_user(row: Row, now: Optional[datetime] = None) -> Optional[Reference]:
	row_id = _row_id(row)
	if row_id is None:
		return None
	return Reference(
		id=row_id,
		type=ReferenceType.USER,
		title=_text(row.get("full_name")),
		preview=_text(row.get("email")),
		metadata=_metadata("user", badge=row.get("role"), source="team"),
	)


def format_message(row: Row, now: Optional[datetime] = None) -> Optional[Reference]:
	row_id = _row_id(row)
	if row_id is None:
		return None
	sender = row.get("sender") or {}
	sender_name = _text(sender.get("full_name") if isinstance(sender, Mapping) else None)
	timestamp = format_relative_time(row.get("created_at"), now=now)
	preview = f"{sender_name} · {timestamp}" if timestamp else sender_name
	return Reference(
		id=row_id,
		type=ReferenceType.MESSAGE,
		title=truncate(_text(row.get("content")), TITLE_MAX_LENGTH),
		preview=preview,
		metadata=_metadata("message", timestamp=timestamp),
	)


def format_chat(row: Row, now: Optional[datetime] = None) -> Optional[Reference]:
	row_id = _row_id(row)
	if row_id is None:
		return None
	return Reference(
		id=row_id,
		type=ReferenceType.CHAT,
		title=_text(row.get("title")),
		preview=f"{_count(row.get('message_count'))} messages",
		metadata=_metadata("message", timestamp=format_relative_time(row.get("updated_at"), now=now)),
	)


def format_file(row: Row, now: Optional[datetime] = None) -> Optional[Reference]:
	row_id = _row_id(row)
	if row_id is None:
		return None
	return Reference(
		id=row_id,
		type=ReferenceType.FILE,
		title=_text(row.get("name")),
		preview=f"{_text(row.get('size_formatted'))} · {_text(row.get('type'))}",
		metadata=_metadata("file", timestamp=format_relative_time(row.get("created_at"), now=now)),
	)


def format_topic(row: Row, now: Optional[datetime] = None) -> Optional[Reference]:
	row_id = _row_id(row)
	if row_id is None:
		return None
	return Reference(
		id=row_id,
		type=ReferenceType.TOPIC,
		title=f"#{_text(row.get('name'))}",
		preview=f"{_count(row.get('reference_count'))} references",
		metadata=_metadata("hash", badge=row.get("category")),
	)


def new_link_reference(url: str) -> Reference:
	return Reference(
		id=NEW_LINK_ID,
		type=ReferenceType.LINK,
		title=url,
		preview="Add new link",
		metadata={"icon": "link", "source": "web"},
	)


FORMATTERS: dict[ReferenceType, Formatter] = {
	ReferenceType.USER: format_user,
	ReferenceType.MESSAGE: format_message,
	ReferenceType.CHAT: format_chat,
	ReferenceType.FILE: format_file,
	ReferenceType.TOPIC: format_topic,
}


__all__ = [
	"FORMATTERS",
	"UNKNOWN",
	"format_relative_time",
	"new_link_reference",
	"truncate",
]
